"""
Deduplicating collector for mapping issues.

An issue is identified by (entity_level, issue_type, key_json). Adding the
same issue again only increments its row_count, so a report with thousands
of rows for one unmapped campaign produces a single issue record.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class MappingIssue:
    """A deduplicated, row-counted diagnostic about one unresolved key."""
    entity_level: str
    issue_type: str
    key_json: Dict[str, Any]
    candidates_json: Optional[List[Dict[str, Any]]] = None
    row_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "entity_level": self.entity_level,
            "issue_type": self.issue_type,
            "key_json": self.key_json,
            "candidates_json": self.candidates_json,
            "row_count": self.row_count,
        }


def issue_identity(entity_level: str, issue_type: str, key_json: Dict[str, Any]) -> str:
    """Stable identity of an issue, independent of key insertion order."""
    return json.dumps(
        {"entity_level": entity_level, "issue_type": issue_type, "key_json": key_json},
        sort_keys=True,
        default=str
    )


class IssueCollector:
    """
    Accumulates issues for one mapping pass.

    Insertion order is preserved. When an issue is added more than once,
    row counts are summed and the candidates from the first addition are kept.
    """

    def __init__(self):
        self._issues: Dict[str, MappingIssue] = {}

    def add_issue(
        self,
        entity_level: str,
        issue_type: str,
        key_json: Dict[str, Any],
        candidates: Optional[List[Dict[str, Any]]] = None,
        row_count: int = 1
    ) -> MappingIssue:
        identity = issue_identity(entity_level, issue_type, key_json)
        existing = self._issues.get(identity)
        if existing is not None:
            existing.row_count += row_count
            return existing

        issue = MappingIssue(
            entity_level=entity_level,
            issue_type=issue_type,
            key_json=dict(key_json),
            candidates_json=candidates,
            row_count=row_count
        )
        self._issues[identity] = issue
        return issue

    def add(self, issue: MappingIssue) -> MappingIssue:
        """Add an already-built issue, merging it like add_issue."""
        return self.add_issue(
            issue.entity_level,
            issue.issue_type,
            issue.key_json,
            candidates=issue.candidates_json,
            row_count=issue.row_count
        )

    def list(self) -> List[MappingIssue]:
        return list(self._issues.values())

    def total_rows(self) -> int:
        """Total number of rows affected by all collected issues."""
        return sum(issue.row_count for issue in self._issues.values())

    def __len__(self) -> int:
        return len(self._issues)


def merge_issues(*issue_lists: Iterable[MappingIssue]) -> List[MappingIssue]:
    """
    Merge issue lists produced by independent passes.

    Uses the same identity and row-count rules as IssueCollector. The input
    issues are not modified.
    """
    collector = IssueCollector()
    for issues in issue_lists:
        for issue in issues:
            collector.add(issue)
    return collector.list()
