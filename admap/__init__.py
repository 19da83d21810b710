from .normalizer import normalize_name, normalize_match_type, infer_is_negative
from .lookup import LookupIndex, build_lookup_index, DatabaseClient, PostgresClient
from .resolve import (
    Ok,
    Ambiguous,
    Unmapped,
    IssueCollector,
    pick_snapshot,
    resolve_campaign_id,
    resolve_ad_group_id,
    resolve_target_id,
)
from .mapping import MappingContext, map_upload, MAPPERS_BY_REPORT_TYPE
from .config import MappingSettings, load_settings

__all__ = [
    "normalize_name", "normalize_match_type", "infer_is_negative",
    "LookupIndex", "build_lookup_index", "DatabaseClient", "PostgresClient",
    "Ok", "Ambiguous", "Unmapped", "IssueCollector", "pick_snapshot",
    "resolve_campaign_id", "resolve_ad_group_id", "resolve_target_id",
    "MappingContext", "map_upload", "MAPPERS_BY_REPORT_TYPE",
    "MappingSettings", "load_settings",
]
