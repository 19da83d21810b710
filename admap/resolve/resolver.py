"""
Per-level name -> ID resolvers.

Each resolver walks the sources in precedence order and stops at the first
source that produces at least one match:

    override  >  snapshot  >  history

A source that matches exactly one distinct ID yields Ok, a source that
matches several yields Ambiguous. Lower-precedence sources are never
consulted to break a tie.

Targets have no name history, so target resolution ends at the snapshot.
"""

from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from ..lookup.index import LookupIndex, ManualOverrideRow, NameHistoryRow
from ..normalizer import build_target_key, normalize_target_match_type
from ..schema import ENTITY_LEVEL_AD_GROUP, ENTITY_LEVEL_CAMPAIGN, ENTITY_LEVEL_TARGET
from ..temporal import DateLike, is_within_range, to_date
from .types import (
    Ambiguous,
    CandidateInfo,
    CandidateSource,
    Ok,
    ResolvedId,
    Unmapped,
)


# =============================================================================
# SOURCE RESOLUTION
# =============================================================================

def _collapse(candidates: Sequence[CandidateInfo]) -> Optional[ResolvedId]:
    """
    Collapse candidates from a single source.

    Returns None when the source produced nothing, so the caller falls
    through to the next source.
    """
    if not candidates:
        return None
    distinct = sorted({c.entity_id for c in candidates})
    if len(distinct) == 1:
        return Ok(distinct[0])
    return Ambiguous(tuple(candidates))


def _resolve_by_overrides(
    overrides: Iterable[ManualOverrideRow],
    reference_date: date
) -> Optional[ResolvedId]:
    matching = sorted({
        row.entity_id for row in overrides
        if is_within_range(reference_date, row.valid_from, row.valid_to)
    })
    return _collapse([
        CandidateInfo(entity_id=entity_id, source=CandidateSource.OVERRIDE)
        for entity_id in matching
    ])


def _resolve_from_snapshot(entity_ids: Iterable[str]) -> Optional[ResolvedId]:
    return _collapse([
        CandidateInfo(entity_id=entity_id, source=CandidateSource.SNAPSHOT)
        for entity_id in sorted(set(entity_ids))
    ])


def _resolve_by_history(
    history_rows: Iterable[NameHistoryRow],
    reference_date: date
) -> Optional[ResolvedId]:
    """History candidates keep their validity window so overlaps can be audited."""
    matching = sorted(
        (row for row in history_rows
         if is_within_range(reference_date, row.valid_from, row.valid_to)),
        key=lambda row: (row.entity_id, row.valid_from or date.min)
    )
    return _collapse([
        CandidateInfo(
            entity_id=row.entity_id,
            source=CandidateSource.HISTORY,
            valid_from=row.valid_from,
            valid_to=row.valid_to
        )
        for row in matching
    ])


def _check_override_parent(
    result: ResolvedId,
    actual_parent_id: Optional[str],
    expected_parent_id: str
) -> ResolvedId:
    """
    An override only stands if the entity it names lives under the expected parent.

    A rejected override is reported as Unmapped with the override as a near
    miss. Ambiguous overrides are returned unchanged.
    """
    if not isinstance(result, Ok):
        return result
    if actual_parent_id is None or actual_parent_id != expected_parent_id:
        return Unmapped(candidates=(
            CandidateInfo(entity_id=result.id, source=CandidateSource.OVERRIDE),
        ))
    return result


def _require_reference_date(reference_date: DateLike) -> date:
    ref = to_date(reference_date)
    if ref is None:
        raise ValueError("Reference date is required")
    return ref


# =============================================================================
# RESOLVERS
# =============================================================================

def resolve_campaign_id(
    campaign_name_norm: str,
    reference_date: DateLike,
    lookup: LookupIndex,
    portfolio_name_norm: Optional[str] = None
) -> ResolvedId:
    """
    Resolve a campaign name to a campaign ID as of a reference date.

    When portfolio_name_norm maps to exactly one portfolio, snapshot
    candidates are narrowed to campaigns in that portfolio. An unknown or
    ambiguous portfolio name leaves the candidates as they are.

    Args:
        campaign_name_norm: Normalized campaign name from the report row
        reference_date: Date the row is being resolved for
        lookup: Lookup index for the pass
        portfolio_name_norm: Normalized portfolio name, if the report has one

    Returns:
        Ok, Ambiguous or Unmapped
    """
    ref = _require_reference_date(reference_date)
    name = campaign_name_norm or ""

    override = _resolve_by_overrides(lookup.overrides_for(ENTITY_LEVEL_CAMPAIGN, name), ref)
    if override is not None:
        return override

    candidates = lookup.campaign_by_name.get(name, ())
    if portfolio_name_norm:
        portfolio_ids = lookup.portfolio_by_name.get(portfolio_name_norm, ())
        if len(set(portfolio_ids)) == 1:
            candidates = tuple(c for c in candidates if c.portfolio_id == portfolio_ids[0])

    snapshot = _resolve_from_snapshot(c.campaign_id for c in candidates)
    if snapshot is not None:
        return snapshot

    history = _resolve_by_history(lookup.campaign_history_by_name.get(name, ()), ref)
    if history is not None:
        return history

    return Unmapped()


def resolve_ad_group_id(
    campaign_id: str,
    ad_group_name_norm: str,
    reference_date: DateLike,
    lookup: LookupIndex
) -> ResolvedId:
    """
    Resolve an ad group name within a campaign.

    Raises:
        ValueError: If campaign_id is empty
    """
    if not campaign_id:
        raise ValueError("campaign_id is required to resolve an ad group")
    ref = _require_reference_date(reference_date)
    name = ad_group_name_norm or ""

    override = _resolve_by_overrides(lookup.overrides_for(ENTITY_LEVEL_AD_GROUP, name), ref)
    if override is not None:
        if isinstance(override, Ok):
            ad_group = lookup.ad_group_by_id.get(override.id)
            actual_parent = ad_group.campaign_id if ad_group is not None else None
            return _check_override_parent(override, actual_parent, campaign_id)
        return override

    key = (campaign_id, name)
    snapshot = _resolve_from_snapshot(
        c.ad_group_id for c in lookup.ad_group_by_campaign_name.get(key, ())
    )
    if snapshot is not None:
        return snapshot

    history = _resolve_by_history(lookup.ad_group_history_by_name.get(key, ()), ref)
    if history is not None:
        return history

    return Unmapped()


def resolve_target_id(
    ad_group_id: str,
    expression_norm: str,
    reference_date: DateLike,
    lookup: LookupIndex,
    match_type_norm: Optional[str] = None,
    match_type_raw: Optional[str] = None,
    is_negative: bool = False
) -> ResolvedId:
    """
    Resolve a keyword or targeting expression within an ad group.

    The snapshot lookup uses the composite key
    (ad_group_id, expression_norm, match_type, is_negative), where the
    match type is derived from match_type_norm, falling back to the raw text.

    Raises:
        ValueError: If ad_group_id is empty
    """
    if not ad_group_id:
        raise ValueError("ad_group_id is required to resolve a target")
    ref = _require_reference_date(reference_date)
    expression = expression_norm or ""

    override = _resolve_by_overrides(lookup.overrides_for(ENTITY_LEVEL_TARGET, expression), ref)
    if override is not None:
        if isinstance(override, Ok):
            target = lookup.target_by_id.get(override.id)
            actual_parent = target.ad_group_id if target is not None else None
            return _check_override_parent(override, actual_parent, ad_group_id)
        return override

    effective_match_type = normalize_target_match_type(match_type_norm, match_type_raw)
    key = build_target_key(ad_group_id, expression, effective_match_type, is_negative)
    snapshot = _resolve_from_snapshot(
        c.target_id for c in lookup.target_by_key.get(key, ())
    )
    if snapshot is not None:
        return snapshot

    return Unmapped()


def candidates_of(result: ResolvedId) -> Tuple[CandidateInfo, ...]:
    """Candidates carried by a result (empty for Ok)."""
    if isinstance(result, (Ambiguous, Unmapped)):
        return result.candidates
    return ()


def candidate_dicts(result: ResolvedId) -> Optional[List[dict]]:
    """JSON-safe candidates for an issue record, or None when there are none."""
    candidates = candidates_of(result)
    if not candidates:
        return None
    return [c.to_dict() for c in candidates]
