"""
Name history derived from dated bulk snapshots.

Each entity's name is tracked as a series of validity windows. When a
snapshot shows a new name, the previous window is closed the day before
that snapshot and a new open window starts on the snapshot date. When an
entity is absent from a snapshot, its open window is closed on that
snapshot's date.

The resulting rows feed the history fallback of the resolvers, letting
reports that use an old name resolve to the right entity.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..normalizer import normalize_name
from ..temporal import DateLike, add_days, to_date

logger = logging.getLogger(__name__)

ENTITY_TYPE_CAMPAIGN = "campaign"
ENTITY_TYPE_AD_GROUP = "ad_group"
ENTITY_TYPE_PORTFOLIO = "portfolio"

# entity type -> (id column, raw name column, normalized name column)
_ENTITY_COLUMNS: Dict[str, Tuple[str, str, str]] = {
    ENTITY_TYPE_CAMPAIGN: ("campaign_id", "campaign_name_raw", "campaign_name_norm"),
    ENTITY_TYPE_AD_GROUP: ("ad_group_id", "ad_group_name_raw", "ad_group_name_norm"),
    ENTITY_TYPE_PORTFOLIO: ("portfolio_id", "portfolio_name_raw", "portfolio_name_norm"),
}


@dataclass
class BulkSnapshot:
    """Entity rows of one bulk snapshot, as row dictionaries."""
    snapshot_date: DateLike
    campaigns: List[Dict[str, Any]] = field(default_factory=list)
    ad_groups: List[Dict[str, Any]] = field(default_factory=list)
    portfolios: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class NameHistoryEntry:
    """A name an entity held from valid_from to valid_to (None = still current)."""
    entity_type: str
    entity_id: str
    name_raw: str
    name_norm: str
    valid_from: date
    valid_to: Optional[date] = None
    campaign_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "name_raw": self.name_raw,
            "name_norm": self.name_norm,
            "valid_from": self.valid_from.isoformat(),
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "campaign_id": self.campaign_id,
        }


@dataclass
class HistoryUpdatePlan:
    """Changes needed to bring stored history in line with a new snapshot."""
    to_insert: List[NameHistoryEntry] = field(default_factory=list)
    to_close: List[NameHistoryEntry] = field(default_factory=list)


def _entity_names(
    entity_type: str,
    rows: Iterable[Dict[str, Any]]
) -> Iterable[Tuple[str, str, str, Optional[str]]]:
    """Yield (entity_id, name_raw, name_norm, campaign_id) for rows with an ID."""
    id_col, raw_col, norm_col = _ENTITY_COLUMNS[entity_type]
    for row in rows:
        entity_id = row.get(id_col)
        if not entity_id:
            continue
        name_raw = row.get(raw_col) or ""
        name_norm = row.get(norm_col)
        if name_norm is None:
            name_norm = normalize_name(name_raw)
        campaign_id = row.get("campaign_id") if entity_type == ENTITY_TYPE_AD_GROUP else None
        yield str(entity_id), name_raw, name_norm, campaign_id


# =============================================================================
# FULL REBUILD
# =============================================================================

def build_name_history(
    snapshots: Sequence[BulkSnapshot],
    debug: bool = False
) -> List[NameHistoryEntry]:
    """
    Build name history from a series of bulk snapshots.

    Snapshots are processed in date order regardless of input order.

    Args:
        snapshots: Dated bulk snapshots
        debug: Log the number of windows produced per entity type

    Returns:
        History entries in the order they were opened
    """
    ordered = sorted(snapshots, key=lambda s: to_date(s.snapshot_date))

    history: List[NameHistoryEntry] = []
    current: Dict[Tuple[str, str], NameHistoryEntry] = {}

    for snapshot in ordered:
        snapshot_date = to_date(snapshot.snapshot_date)
        seen = set()

        for entity_type, rows in (
            (ENTITY_TYPE_CAMPAIGN, snapshot.campaigns),
            (ENTITY_TYPE_AD_GROUP, snapshot.ad_groups),
            (ENTITY_TYPE_PORTFOLIO, snapshot.portfolios),
        ):
            for entity_id, name_raw, name_norm, campaign_id in _entity_names(entity_type, rows):
                key = (entity_type, entity_id)
                seen.add(key)
                open_entry = current.get(key)

                if open_entry is not None and open_entry.valid_to is None \
                        and open_entry.name_norm == name_norm:
                    continue

                if open_entry is not None and open_entry.valid_to is None:
                    open_entry.valid_to = add_days(snapshot_date, -1)

                entry = NameHistoryEntry(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    name_raw=name_raw,
                    name_norm=name_norm,
                    valid_from=snapshot_date,
                    campaign_id=campaign_id
                )
                history.append(entry)
                current[key] = entry

        for key, entry in current.items():
            if key not in seen and entry.valid_to is None:
                entry.valid_to = snapshot_date

    if debug:
        counts: Dict[str, int] = {}
        for entry in history:
            counts[entry.entity_type] = counts.get(entry.entity_type, 0) + 1
        logger.info(f"Built name history from {len(ordered)} snapshots: {counts}")

    return history


# =============================================================================
# INCREMENTAL UPDATE
# =============================================================================

def plan_name_history_updates(
    current: Iterable[NameHistoryEntry],
    open_rows: Iterable[NameHistoryEntry],
    snapshot_date: DateLike
) -> HistoryUpdatePlan:
    """
    Plan the history changes for one newly ingested snapshot.

    Args:
        current: Names as they appear in the new snapshot
        open_rows: Stored history rows that are still open (valid_to is None)
        snapshot_date: Date of the new snapshot

    Returns:
        HistoryUpdatePlan. to_close holds copies of the open rows with
        valid_to set to the day before the snapshot; to_insert holds the
        new open rows, starting on the snapshot date.
    """
    snap = to_date(snapshot_date)
    if snap is None:
        raise ValueError("Snapshot date is required")

    open_by_key: Dict[Tuple[str, str], NameHistoryEntry] = {}
    for row in open_rows:
        open_by_key.setdefault((row.entity_type, row.entity_id), row)

    plan = HistoryUpdatePlan()
    for row in current:
        if not row.entity_id:
            continue
        open_row = open_by_key.get((row.entity_type, row.entity_id))
        if open_row is not None and open_row.name_norm == row.name_norm:
            continue

        if open_row is not None:
            plan.to_close.append(replace(open_row, valid_to=add_days(snap, -1)))
        plan.to_insert.append(replace(row, valid_from=snap, valid_to=None))

    return plan


def history_rows_for_lookup(
    entries: Iterable[NameHistoryEntry],
    entity_type: str
) -> List[Dict[str, Any]]:
    """
    Convert history entries to the row shape accepted by build_lookup_index.

    Args:
        entries: History entries of any entity type
        entity_type: "campaign" or "ad_group"; other entries are skipped

    Returns:
        Row dictionaries for campaign_history or ad_group_history
    """
    if entity_type not in (ENTITY_TYPE_CAMPAIGN, ENTITY_TYPE_AD_GROUP):
        raise ValueError(f"No lookup history for entity type: {entity_type}")

    id_col = _ENTITY_COLUMNS[entity_type][0]
    rows = []
    for entry in entries:
        if entry.entity_type != entity_type:
            continue
        row = {
            id_col: entry.entity_id,
            "name_norm": entry.name_norm,
            "valid_from": entry.valid_from,
            "valid_to": entry.valid_to,
        }
        if entity_type == ENTITY_TYPE_AD_GROUP:
            row["campaign_id"] = entry.campaign_id
        rows.append(row)
    return rows
