"""Lookup index construction and the database collaborator that feeds it."""

from .index import (
    AdGroupCandidate,
    CampaignCandidate,
    LookupIndex,
    ManualOverrideRow,
    NameHistoryRow,
    TargetCandidate,
    build_lookup_index,
)
from .postgres_client import DatabaseClient, PostgresClient

__all__ = [
    "AdGroupCandidate",
    "CampaignCandidate",
    "LookupIndex",
    "ManualOverrideRow",
    "NameHistoryRow",
    "TargetCandidate",
    "build_lookup_index",
    "DatabaseClient",
    "PostgresClient",
]
