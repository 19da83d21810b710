"""
Lookup index for name -> ID resolution.

The index is built once per mapping pass from three layers:
- Manual overrides: operator-asserted name -> ID assignments (always win)
- Current bulk snapshot: campaigns, ad groups, targets, portfolios
- Name history: names each campaign / ad group held over time

Key principles:
- Built entirely before the pass begins
- Never mutated while resolving (all mappings are read-only views)
- Plurality is preserved: several candidates may share a name, and it is
  the resolver's job to collapse, flag, or reject them
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..normalizer import TargetKey, build_target_key, normalize_match_type
from ..temporal import to_date

logger = logging.getLogger(__name__)


# =============================================================================
# CANDIDATE TYPES
# =============================================================================

@dataclass(frozen=True)
class CampaignCandidate:
    """A campaign present in the current bulk snapshot."""
    campaign_id: str
    portfolio_id: Optional[str] = None


@dataclass(frozen=True)
class AdGroupCandidate:
    """An ad group present in the current bulk snapshot."""
    ad_group_id: str
    campaign_id: str


@dataclass(frozen=True)
class TargetCandidate:
    """A keyword or product target present in the current bulk snapshot."""
    target_id: str
    ad_group_id: str
    match_type_norm: str
    is_negative: bool


@dataclass(frozen=True)
class NameHistoryRow:
    """
    A name an entity held during a period.

    valid_to is None while the name is still current.
    campaign_id is set for ad group history (ad group names are campaign-scoped).
    """
    entity_id: str
    name_norm: str
    valid_from: Optional[date]
    valid_to: Optional[date]
    campaign_id: Optional[str] = None


@dataclass(frozen=True)
class ManualOverrideRow:
    """An operator-asserted resolution of a name to an entity ID."""
    entity_level: str
    entity_id: str
    name_norm: str
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None


# =============================================================================
# LOOKUP INDEX
# =============================================================================

def _freeze(grouped: Mapping[Any, List[Any]]) -> Mapping[Any, Tuple[Any, ...]]:
    """Turn a dict of lists into a read-only mapping of tuples."""
    return MappingProxyType({key: tuple(values) for key, values in grouped.items()})


def _empty() -> Mapping[Any, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class LookupIndex:
    """
    Immutable set of indices used by the resolvers.

    Keys:
    - campaign_by_name: campaign name_norm
    - ad_group_by_campaign_name: (campaign_id, ad group name_norm)
    - target_by_key: (ad_group_id, expression_norm, match_type_norm, is_negative)
    - portfolio_by_name: portfolio name_norm -> portfolio IDs
    - campaign_history_by_name: campaign name_norm
    - ad_group_history_by_name: (campaign_id, ad group name_norm)
    - overrides_by_name: (entity_level, name_norm)
    """
    campaign_by_name: Mapping[str, Tuple[CampaignCandidate, ...]] = field(default_factory=_empty)
    campaign_by_id: Mapping[str, CampaignCandidate] = field(default_factory=_empty)
    ad_group_by_campaign_name: Mapping[Tuple[str, str], Tuple[AdGroupCandidate, ...]] = field(default_factory=_empty)
    ad_group_by_id: Mapping[str, AdGroupCandidate] = field(default_factory=_empty)
    target_by_key: Mapping[TargetKey, Tuple[TargetCandidate, ...]] = field(default_factory=_empty)
    target_by_id: Mapping[str, TargetCandidate] = field(default_factory=_empty)
    portfolio_by_name: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty)
    campaign_history_by_name: Mapping[str, Tuple[NameHistoryRow, ...]] = field(default_factory=_empty)
    ad_group_history_by_name: Mapping[Tuple[str, str], Tuple[NameHistoryRow, ...]] = field(default_factory=_empty)
    overrides_by_name: Mapping[Tuple[str, str], Tuple[ManualOverrideRow, ...]] = field(default_factory=_empty)

    def overrides_for(self, entity_level: str, name_norm: str) -> Tuple[ManualOverrideRow, ...]:
        return self.overrides_by_name.get((entity_level, name_norm), ())

    def summary(self) -> Dict[str, int]:
        """Entry counts per index, for logging."""
        return {
            "campaigns": len(self.campaign_by_id),
            "ad_groups": len(self.ad_group_by_id),
            "targets": len(self.target_by_id),
            "portfolio_names": len(self.portfolio_by_name),
            "campaign_history_names": len(self.campaign_history_by_name),
            "ad_group_history_names": len(self.ad_group_history_by_name),
            "override_names": len(self.overrides_by_name),
        }


# =============================================================================
# BUILDER
# =============================================================================

def _clean_id(value: Any) -> Optional[str]:
    """
    Normalize an identifier read from a spreadsheet or database.

    IDs exported through spreadsheets sometimes come back as floats ("123.0").
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    return raw[:-2] if raw.endswith(".0") else raw


def build_lookup_index(
    campaigns: Iterable[Dict[str, Any]] = (),
    ad_groups: Iterable[Dict[str, Any]] = (),
    targets: Iterable[Dict[str, Any]] = (),
    portfolios: Iterable[Dict[str, Any]] = (),
    overrides: Iterable[Dict[str, Any]] = (),
    campaign_history: Iterable[Dict[str, Any]] = (),
    ad_group_history: Iterable[Dict[str, Any]] = (),
    debug: bool = False
) -> LookupIndex:
    """
    Build a LookupIndex from table-shaped row dictionaries.

    Expected row shapes (matching the database tables):
    - campaigns: campaign_id, campaign_name_norm, portfolio_id
    - ad_groups: ad_group_id, campaign_id, ad_group_name_norm
    - targets: target_id, ad_group_id, expression_norm, match_type, is_negative
    - portfolios: portfolio_id, portfolio_name_norm
    - overrides: entity_level, entity_id, name_norm, valid_from, valid_to
    - campaign_history: campaign_id, name_norm, valid_from, valid_to
    - ad_group_history: ad_group_id, campaign_id, name_norm, valid_from, valid_to

    Rows without an identifier are skipped.

    Args:
        campaigns..ad_group_history: Iterables of row dictionaries
        debug: Log index sizes and skipped rows

    Returns:
        Immutable LookupIndex
    """
    skipped = 0

    campaign_by_name: Dict[str, List[CampaignCandidate]] = defaultdict(list)
    campaign_by_id: Dict[str, CampaignCandidate] = {}
    for row in campaigns:
        campaign_id = _clean_id(row.get("campaign_id"))
        if not campaign_id:
            skipped += 1
            continue
        candidate = CampaignCandidate(
            campaign_id=campaign_id,
            portfolio_id=_clean_id(row.get("portfolio_id"))
        )
        campaign_by_name[row.get("campaign_name_norm") or ""].append(candidate)
        campaign_by_id[campaign_id] = candidate

    ad_group_by_campaign_name: Dict[Tuple[str, str], List[AdGroupCandidate]] = defaultdict(list)
    ad_group_by_id: Dict[str, AdGroupCandidate] = {}
    for row in ad_groups:
        ad_group_id = _clean_id(row.get("ad_group_id"))
        campaign_id = _clean_id(row.get("campaign_id"))
        if not ad_group_id or not campaign_id:
            skipped += 1
            continue
        candidate = AdGroupCandidate(ad_group_id=ad_group_id, campaign_id=campaign_id)
        key = (campaign_id, row.get("ad_group_name_norm") or "")
        ad_group_by_campaign_name[key].append(candidate)
        ad_group_by_id[ad_group_id] = candidate

    target_by_key: Dict[TargetKey, List[TargetCandidate]] = defaultdict(list)
    target_by_id: Dict[str, TargetCandidate] = {}
    for row in targets:
        target_id = _clean_id(row.get("target_id"))
        ad_group_id = _clean_id(row.get("ad_group_id"))
        if not target_id or not ad_group_id:
            skipped += 1
            continue
        match_type_norm = normalize_match_type(row.get("match_type"))
        is_negative = bool(row.get("is_negative"))
        candidate = TargetCandidate(
            target_id=target_id,
            ad_group_id=ad_group_id,
            match_type_norm=match_type_norm,
            is_negative=is_negative
        )
        key = build_target_key(
            ad_group_id,
            row.get("expression_norm") or "",
            match_type_norm,
            is_negative
        )
        target_by_key[key].append(candidate)
        target_by_id[target_id] = candidate

    portfolio_by_name: Dict[str, List[str]] = defaultdict(list)
    for row in portfolios:
        portfolio_id = _clean_id(row.get("portfolio_id"))
        if not portfolio_id:
            skipped += 1
            continue
        portfolio_by_name[row.get("portfolio_name_norm") or ""].append(portfolio_id)

    overrides_by_name: Dict[Tuple[str, str], List[ManualOverrideRow]] = defaultdict(list)
    for row in overrides:
        entity_id = _clean_id(row.get("entity_id"))
        if not entity_id:
            skipped += 1
            continue
        override = ManualOverrideRow(
            entity_level=row["entity_level"],
            entity_id=entity_id,
            name_norm=row.get("name_norm") or "",
            valid_from=to_date(row.get("valid_from")),
            valid_to=to_date(row.get("valid_to"))
        )
        overrides_by_name[(override.entity_level, override.name_norm)].append(override)

    campaign_history_by_name: Dict[str, List[NameHistoryRow]] = defaultdict(list)
    for row in campaign_history:
        campaign_id = _clean_id(row.get("campaign_id"))
        if not campaign_id:
            skipped += 1
            continue
        name_norm = row.get("name_norm") or ""
        campaign_history_by_name[name_norm].append(NameHistoryRow(
            entity_id=campaign_id,
            name_norm=name_norm,
            valid_from=to_date(row.get("valid_from")),
            valid_to=to_date(row.get("valid_to"))
        ))

    ad_group_history_by_name: Dict[Tuple[str, str], List[NameHistoryRow]] = defaultdict(list)
    for row in ad_group_history:
        ad_group_id = _clean_id(row.get("ad_group_id"))
        campaign_id = _clean_id(row.get("campaign_id"))
        if not ad_group_id or not campaign_id:
            skipped += 1
            continue
        name_norm = row.get("name_norm") or ""
        ad_group_history_by_name[(campaign_id, name_norm)].append(NameHistoryRow(
            entity_id=ad_group_id,
            name_norm=name_norm,
            valid_from=to_date(row.get("valid_from")),
            valid_to=to_date(row.get("valid_to")),
            campaign_id=campaign_id
        ))

    index = LookupIndex(
        campaign_by_name=_freeze(campaign_by_name),
        campaign_by_id=MappingProxyType(campaign_by_id),
        ad_group_by_campaign_name=_freeze(ad_group_by_campaign_name),
        ad_group_by_id=MappingProxyType(ad_group_by_id),
        target_by_key=_freeze(target_by_key),
        target_by_id=MappingProxyType(target_by_id),
        portfolio_by_name=_freeze(portfolio_by_name),
        campaign_history_by_name=_freeze(campaign_history_by_name),
        ad_group_history_by_name=_freeze(ad_group_history_by_name),
        overrides_by_name=_freeze(overrides_by_name),
    )

    if debug:
        logger.info(f"Lookup index built: {index.summary()} (skipped rows without IDs: {skipped})")

    return index
