"""Name -> ID resolution, issue collection and snapshot picking."""

from .types import (
    Ambiguous,
    CandidateInfo,
    CandidateSource,
    Ok,
    ResolutionStatus,
    ResolvedId,
    Unmapped,
)
from .resolver import (
    candidate_dicts,
    resolve_ad_group_id,
    resolve_campaign_id,
    resolve_target_id,
)
from .issues import IssueCollector, MappingIssue, merge_issues
from .snapshot_picker import pick_snapshot

__all__ = [
    "Ambiguous",
    "CandidateInfo",
    "CandidateSource",
    "Ok",
    "ResolutionStatus",
    "ResolvedId",
    "Unmapped",
    "candidate_dicts",
    "resolve_ad_group_id",
    "resolve_campaign_id",
    "resolve_target_id",
    "IssueCollector",
    "MappingIssue",
    "merge_issues",
    "pick_snapshot",
]
