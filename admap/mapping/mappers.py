"""
Fact mappers: convert raw report rows into fact rows keyed by entity IDs.

Each mapper resolves the entity hierarchy its report needs
(campaign -> ad group -> target) and stops at the first level that fails.
A failing row is dropped and a single issue is recorded at the failing
level. Deeper levels are never attempted for that row.

Issues are staged per level while the rows are processed and added to the
collector at the end of the pass, campaign issues first, then ad group,
then target. A staged issue whose key resolved successfully on another row
of the same pass is dropped.

Mappers are pure: they do no I/O and never raise for unresolved names.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..lookup.index import LookupIndex
from ..normalizer import infer_is_negative, normalize_target_match_type
from ..resolve.issues import IssueCollector, MappingIssue
from ..resolve.resolver import (
    candidate_dicts,
    resolve_ad_group_id,
    resolve_campaign_id,
    resolve_target_id,
)
from ..resolve.types import Ambiguous, Ok, ResolvedId
from ..schema import (
    ENTITY_LEVEL_AD_GROUP,
    ENTITY_LEVEL_CAMPAIGN,
    ENTITY_LEVEL_TARGET,
    ISSUE_AMBIGUOUS,
    ISSUE_UNMAPPED,
    REPORT_SP_CAMPAIGN,
    REPORT_SP_PLACEMENT,
    REPORT_SP_STIS,
    REPORT_SP_TARGETING,
    ROLLUP_TARGET_KEY,
    WILDCARD_TARGETING,
)
from ..temporal import DateLike


@dataclass(frozen=True)
class MappingContext:
    """Static parameters of one mapping pass."""
    upload_id: str
    account_id: str
    exported_at: Any
    reference_date: DateLike


@dataclass
class MappingResult:
    facts: List[Dict[str, Any]] = field(default_factory=list)
    issues: List[MappingIssue] = field(default_factory=list)


# =============================================================================
# ISSUE STAGING
# =============================================================================

_LEVEL_ORDER = (ENTITY_LEVEL_CAMPAIGN, ENTITY_LEVEL_AD_GROUP, ENTITY_LEVEL_TARGET)


def _key_identity(key_json: Dict[str, Any]) -> str:
    return json.dumps(key_json, sort_keys=True, default=str)


class _PendingIssues:
    """Per-level issue staging with suppression of keys resolved elsewhere."""

    def __init__(self):
        self._pending: Dict[str, List[Tuple[str, str, Dict[str, Any], Optional[List[dict]]]]] = {
            level: [] for level in _LEVEL_ORDER
        }
        self._resolved: Dict[str, Set[str]] = {level: set() for level in _LEVEL_ORDER}

    def stage(self, entity_level: str, key_json: Dict[str, Any], result: ResolvedId):
        issue_type = ISSUE_AMBIGUOUS if isinstance(result, Ambiguous) else ISSUE_UNMAPPED
        self._pending[entity_level].append(
            (_key_identity(key_json), issue_type, key_json, candidate_dicts(result))
        )

    def mark_resolved(self, entity_level: str, key_json: Dict[str, Any]):
        self._resolved[entity_level].add(_key_identity(key_json))

    def flush(self, collector: IssueCollector):
        for level in _LEVEL_ORDER:
            resolved = self._resolved[level]
            for identity, issue_type, key_json, candidates in self._pending[level]:
                if identity in resolved:
                    continue
                collector.add_issue(level, issue_type, key_json, candidates=candidates)


# =============================================================================
# ISSUE KEYS
# =============================================================================

def _campaign_key(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "campaign_name_norm": row.get("campaign_name_norm"),
        "portfolio_name_norm": row.get("portfolio_name_norm"),
    }


def _ad_group_key(row: Dict[str, Any]) -> Dict[str, Any]:
    key = _campaign_key(row)
    key["ad_group_name_norm"] = row.get("ad_group_name_norm")
    return key


def _target_key(row: Dict[str, Any], is_negative: bool) -> Dict[str, Any]:
    # match type as used for resolution, raw text included
    key = _ad_group_key(row)
    key["targeting_norm"] = row.get("targeting_norm")
    key["match_type_norm"] = normalize_target_match_type(
        row.get("match_type_norm"),
        row.get("match_type_raw")
    )
    key["is_negative"] = is_negative
    return key


# =============================================================================
# HIERARCHY RESOLUTION
# =============================================================================

def _stamp(row: Dict[str, Any], context: MappingContext) -> Dict[str, Any]:
    fact = dict(row)
    fact["upload_id"] = context.upload_id
    fact["account_id"] = context.account_id
    fact["exported_at"] = context.exported_at
    return fact


def _resolve_campaign(
    row: Dict[str, Any],
    lookup: LookupIndex,
    context: MappingContext,
    pending: _PendingIssues
) -> Optional[str]:
    key = _campaign_key(row)
    result = resolve_campaign_id(
        row.get("campaign_name_norm") or "",
        context.reference_date,
        lookup,
        portfolio_name_norm=row.get("portfolio_name_norm")
    )
    if not isinstance(result, Ok):
        pending.stage(ENTITY_LEVEL_CAMPAIGN, key, result)
        return None
    pending.mark_resolved(ENTITY_LEVEL_CAMPAIGN, key)
    return result.id


def _resolve_ad_group(
    row: Dict[str, Any],
    campaign_id: str,
    lookup: LookupIndex,
    context: MappingContext,
    pending: _PendingIssues
) -> Optional[str]:
    key = _ad_group_key(row)
    result = resolve_ad_group_id(
        campaign_id,
        row.get("ad_group_name_norm") or "",
        context.reference_date,
        lookup
    )
    if not isinstance(result, Ok):
        pending.stage(ENTITY_LEVEL_AD_GROUP, key, result)
        return None
    pending.mark_resolved(ENTITY_LEVEL_AD_GROUP, key)
    return result.id


def _resolve_target(
    row: Dict[str, Any],
    ad_group_id: str,
    lookup: LookupIndex,
    context: MappingContext,
    pending: _PendingIssues
) -> Optional[str]:
    is_negative = infer_is_negative(row.get("match_type_raw"))
    key = _target_key(row, is_negative)
    result = resolve_target_id(
        ad_group_id,
        row.get("targeting_norm") or "",
        context.reference_date,
        lookup,
        match_type_norm=row.get("match_type_norm"),
        match_type_raw=row.get("match_type_raw"),
        is_negative=is_negative
    )
    if not isinstance(result, Ok):
        pending.stage(ENTITY_LEVEL_TARGET, key, result)
        return None
    pending.mark_resolved(ENTITY_LEVEL_TARGET, key)
    return result.id


def _finish(
    facts: List[Dict[str, Any]],
    pending: _PendingIssues,
    collector: Optional[IssueCollector]
) -> MappingResult:
    collector = collector if collector is not None else IssueCollector()
    pending.flush(collector)
    return MappingResult(facts=facts, issues=collector.list())


# =============================================================================
# MAPPERS
# =============================================================================

def _map_campaign_level(
    rows: Iterable[Dict[str, Any]],
    lookup: LookupIndex,
    context: MappingContext,
    collector: Optional[IssueCollector]
) -> MappingResult:
    facts = []
    pending = _PendingIssues()

    for row in rows:
        campaign_id = _resolve_campaign(row, lookup, context, pending)
        if campaign_id is None:
            continue

        campaign = lookup.campaign_by_id.get(campaign_id)
        fact = _stamp(row, context)
        fact["campaign_id"] = campaign_id
        fact["portfolio_id"] = campaign.portfolio_id if campaign is not None else None
        facts.append(fact)

    return _finish(facts, pending, collector)


def map_campaign_rows(
    rows: Iterable[Dict[str, Any]],
    lookup: LookupIndex,
    context: MappingContext,
    collector: Optional[IssueCollector] = None
) -> MappingResult:
    """
    Map campaign report rows.

    Facts carry campaign_id and portfolio_id (from the snapshot's campaign
    record, None when the campaign is not in the snapshot).

    Args:
        rows: Raw report rows
        lookup: Lookup index for the pass
        context: Upload/account/export parameters
        collector: Optional collector to add issues to (a new one by default)

    Returns:
        MappingResult with facts and the collector's issues
    """
    return _map_campaign_level(rows, lookup, context, collector)


def map_placement_rows(
    rows: Iterable[Dict[str, Any]],
    lookup: LookupIndex,
    context: MappingContext,
    collector: Optional[IssueCollector] = None
) -> MappingResult:
    """Map placement report rows. Same resolution and output IDs as campaign rows."""
    return _map_campaign_level(rows, lookup, context, collector)


def map_targeting_rows(
    rows: Iterable[Dict[str, Any]],
    lookup: LookupIndex,
    context: MappingContext,
    collector: Optional[IssueCollector] = None
) -> MappingResult:
    """
    Map targeting report rows through campaign, ad group and target.

    Facts carry campaign_id, ad_group_id and target_id.
    """
    facts = []
    pending = _PendingIssues()

    for row in rows:
        campaign_id = _resolve_campaign(row, lookup, context, pending)
        if campaign_id is None:
            continue
        ad_group_id = _resolve_ad_group(row, campaign_id, lookup, context, pending)
        if ad_group_id is None:
            continue
        target_id = _resolve_target(row, ad_group_id, lookup, context, pending)
        if target_id is None:
            continue

        fact = _stamp(row, context)
        fact["campaign_id"] = campaign_id
        fact["ad_group_id"] = ad_group_id
        fact["target_id"] = target_id
        facts.append(fact)

    return _finish(facts, pending, collector)


def map_stis_rows(
    rows: Iterable[Dict[str, Any]],
    lookup: LookupIndex,
    context: MappingContext,
    collector: Optional[IssueCollector] = None
) -> MappingResult:
    """
    Map search-term impression share rows.

    Rows whose targeting is the match-all "*" expression are not tied to a
    single target: target resolution is skipped, target_id is None and
    target_key is the rollup marker. For every other row target_key equals
    target_id.
    """
    facts = []
    pending = _PendingIssues()

    for row in rows:
        campaign_id = _resolve_campaign(row, lookup, context, pending)
        if campaign_id is None:
            continue
        ad_group_id = _resolve_ad_group(row, campaign_id, lookup, context, pending)
        if ad_group_id is None:
            continue

        if str(row.get("targeting_norm") or "").strip() == WILDCARD_TARGETING:
            target_id = None
            target_key = ROLLUP_TARGET_KEY
        else:
            target_id = _resolve_target(row, ad_group_id, lookup, context, pending)
            if target_id is None:
                continue
            target_key = target_id

        fact = _stamp(row, context)
        fact["campaign_id"] = campaign_id
        fact["ad_group_id"] = ad_group_id
        fact["target_id"] = target_id
        fact["target_key"] = target_key
        facts.append(fact)

    return _finish(facts, pending, collector)


Mapper = Callable[..., MappingResult]

MAPPERS_BY_REPORT_TYPE: Dict[str, Mapper] = {
    REPORT_SP_CAMPAIGN: map_campaign_rows,
    REPORT_SP_PLACEMENT: map_placement_rows,
    REPORT_SP_TARGETING: map_targeting_rows,
    REPORT_SP_STIS: map_stis_rows,
}


def get_mapper(report_type: str) -> Mapper:
    """
    Return the mapper for a report type.

    Raises:
        ValueError: If the report type has no mapper
    """
    try:
        return MAPPERS_BY_REPORT_TYPE[report_type]
    except KeyError:
        raise ValueError(
            f"No mapper for report type: {report_type}. "
            f"Supported report types: {', '.join(MAPPERS_BY_REPORT_TYPE)}"
        ) from None
