"""Schema definitions for entity levels, issue types and report tables."""

from typing import Dict, List, Any

# Entity levels an issue can be recorded against
ENTITY_LEVEL_CAMPAIGN = "campaign"
ENTITY_LEVEL_AD_GROUP = "ad_group"
ENTITY_LEVEL_TARGET = "target"
ENTITY_LEVEL_SNAPSHOT = "snapshot"

ENTITY_LEVELS = [
    ENTITY_LEVEL_CAMPAIGN,
    ENTITY_LEVEL_AD_GROUP,
    ENTITY_LEVEL_TARGET,
    ENTITY_LEVEL_SNAPSHOT,
]

# Issue types
ISSUE_UNMAPPED = "unmapped"
ISSUE_AMBIGUOUS = "ambiguous"
ISSUE_MISSING_BULK_SNAPSHOT = "missing_bulk_snapshot"

ISSUE_TYPES = [
    ISSUE_UNMAPPED,
    ISSUE_AMBIGUOUS,
    ISSUE_MISSING_BULK_SNAPSHOT,
]

# Normalized match types, in classification order
MATCH_TYPE_EXACT = "EXACT"
MATCH_TYPE_PHRASE = "PHRASE"
MATCH_TYPE_BROAD = "BROAD"
MATCH_TYPE_TARGETING_EXPRESSION = "TARGETING_EXPRESSION"
MATCH_TYPE_UNKNOWN = "UNKNOWN"

MATCH_TYPES = [
    MATCH_TYPE_EXACT,
    MATCH_TYPE_PHRASE,
    MATCH_TYPE_BROAD,
    MATCH_TYPE_TARGETING_EXPRESSION,
    MATCH_TYPE_UNKNOWN,
]

# Search-term rows whose targeting is the match-all expression roll up
# to this key instead of a target ID
WILDCARD_TARGETING = "*"
ROLLUP_TARGET_KEY = "__ROLLUP__"

# A report exported just before a bulk snapshot run may use that snapshot
SNAPSHOT_FORWARD_WINDOW_DAYS = 7

# Report types
REPORT_SP_CAMPAIGN = "sp_campaign"
REPORT_SP_PLACEMENT = "sp_placement"
REPORT_SP_TARGETING = "sp_targeting"
REPORT_SP_STIS = "sp_stis"

# Columns shared by every report shape
_BASE_COLUMNS = [
    "date",
    "portfolio_name_raw",
    "portfolio_name_norm",
    "campaign_name_raw",
    "campaign_name_norm",
]

_BASE_METRICS = [
    "impressions",
    "clicks",
    "spend",
    "sales",
    "orders",
    "units",
]

_RATIO_METRICS = [
    "cpc",
    "ctr",
    "acos",
    "roas",
]

_AD_GROUP_COLUMNS = [
    "ad_group_name_raw",
    "ad_group_name_norm",
    "targeting_raw",
    "targeting_norm",
    "match_type_raw",
    "match_type_norm",
]

# Raw/fact table layout per report type.
# raw_columns are the columns read from the raw table; resolved_columns are
# the identifier columns the mapper adds to each fact row.
REPORT_TYPES: Dict[str, Dict[str, Any]] = {
    REPORT_SP_CAMPAIGN: {
        "raw_table": "sp_campaign_daily_raw",
        "fact_table": "sp_campaign_hourly_fact",
        "raw_columns": (
            ["date", "start_time"] + _BASE_COLUMNS[1:] + _BASE_METRICS
        ),
        "resolved_columns": ["campaign_id", "portfolio_id"],
    },
    REPORT_SP_PLACEMENT: {
        "raw_table": "sp_placement_daily_raw",
        "fact_table": "sp_placement_daily_fact",
        "raw_columns": (
            _BASE_COLUMNS
            + [
                "bidding_strategy",
                "placement_raw",
                "placement_raw_norm",
                "placement_code",
            ]
            + _BASE_METRICS
            + _RATIO_METRICS
        ),
        "resolved_columns": ["campaign_id", "portfolio_id"],
    },
    REPORT_SP_TARGETING: {
        "raw_table": "sp_targeting_daily_raw",
        "fact_table": "sp_targeting_daily_fact",
        "raw_columns": (
            _BASE_COLUMNS
            + _AD_GROUP_COLUMNS
            + _BASE_METRICS
            + _RATIO_METRICS
            + ["conversion_rate", "top_of_search_impression_share"]
        ),
        "resolved_columns": ["campaign_id", "ad_group_id", "target_id"],
    },
    REPORT_SP_STIS: {
        "raw_table": "sp_stis_daily_raw",
        "fact_table": "sp_stis_daily_fact",
        "raw_columns": (
            _BASE_COLUMNS
            + _AD_GROUP_COLUMNS
            + [
                "customer_search_term_raw",
                "customer_search_term_norm",
                "search_term_impression_rank",
                "search_term_impression_share",
            ]
            + _BASE_METRICS
            + _RATIO_METRICS
            + ["conversion_rate"]
        ),
        "resolved_columns": ["campaign_id", "ad_group_id", "target_id", "target_key"],
    },
}

# Columns stamped onto every fact row
FACT_STAMP_COLUMNS: List[str] = ["upload_id", "account_id", "exported_at"]

# Table holding mapping issues
MAPPING_ISSUES_TABLE = "sp_mapping_issues"


def get_report_spec(report_type: str) -> Dict[str, Any]:
    """Return the table layout for a report type.

    Raises:
        ValueError: If the report type is unknown
    """
    try:
        return REPORT_TYPES[report_type]
    except KeyError:
        raise ValueError(
            f"Unknown report type: {report_type}. "
            f"Supported report types: {', '.join(REPORT_TYPES)}"
        ) from None


__all__ = [
    "ENTITY_LEVEL_CAMPAIGN",
    "ENTITY_LEVEL_AD_GROUP",
    "ENTITY_LEVEL_TARGET",
    "ENTITY_LEVEL_SNAPSHOT",
    "ENTITY_LEVELS",
    "ISSUE_UNMAPPED",
    "ISSUE_AMBIGUOUS",
    "ISSUE_MISSING_BULK_SNAPSHOT",
    "ISSUE_TYPES",
    "MATCH_TYPE_EXACT",
    "MATCH_TYPE_PHRASE",
    "MATCH_TYPE_BROAD",
    "MATCH_TYPE_TARGETING_EXPRESSION",
    "MATCH_TYPE_UNKNOWN",
    "MATCH_TYPES",
    "WILDCARD_TARGETING",
    "ROLLUP_TARGET_KEY",
    "SNAPSHOT_FORWARD_WINDOW_DAYS",
    "REPORT_SP_CAMPAIGN",
    "REPORT_SP_PLACEMENT",
    "REPORT_SP_TARGETING",
    "REPORT_SP_STIS",
    "REPORT_TYPES",
    "FACT_STAMP_COLUMNS",
    "MAPPING_ISSUES_TABLE",
    "get_report_spec",
]
