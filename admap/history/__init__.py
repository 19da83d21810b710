"""Name history tracking across bulk snapshots."""

from .name_history import (
    ENTITY_TYPE_AD_GROUP,
    ENTITY_TYPE_CAMPAIGN,
    ENTITY_TYPE_PORTFOLIO,
    BulkSnapshot,
    HistoryUpdatePlan,
    NameHistoryEntry,
    build_name_history,
    history_rows_for_lookup,
    plan_name_history_updates,
)

__all__ = [
    "ENTITY_TYPE_AD_GROUP",
    "ENTITY_TYPE_CAMPAIGN",
    "ENTITY_TYPE_PORTFOLIO",
    "BulkSnapshot",
    "HistoryUpdatePlan",
    "NameHistoryEntry",
    "build_name_history",
    "history_rows_for_lookup",
    "plan_name_history_updates",
]
