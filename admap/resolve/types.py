"""
Resolution outcome types.

Every resolution attempt produces exactly one of:
- Ok: the name resolved to a single entity ID
- Ambiguous: the first source that matched produced two or more distinct IDs
- Unmapped: no source produced a match (optionally with near-miss candidates)

Callers must handle all three. Ambiguity and absence are different
operational problems: an ambiguous name needs a manual override, an
unmapped one usually needs a fresher bulk snapshot.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from ..temporal import iso_or_none


class ResolutionStatus(Enum):
    OK = "ok"
    AMBIGUOUS = "ambiguous"
    UNMAPPED = "unmapped"


class CandidateSource(Enum):
    """Where a candidate came from, in precedence order."""
    OVERRIDE = "override"
    SNAPSHOT = "snapshot"
    HISTORY = "history"


@dataclass(frozen=True)
class CandidateInfo:
    """
    One matching possibility for a name.

    valid_from / valid_to are only set for history candidates, so that an
    ambiguous history match can be audited window by window.
    """
    entity_id: str
    source: CandidateSource
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        data: Dict[str, Any] = {
            "entity_id": self.entity_id,
            "source": self.source.value,
        }
        if self.valid_from is not None or self.valid_to is not None:
            data["valid_from"] = iso_or_none(self.valid_from)
            data["valid_to"] = iso_or_none(self.valid_to)
        return data


@dataclass(frozen=True)
class Ok:
    id: str

    @property
    def status(self) -> ResolutionStatus:
        return ResolutionStatus.OK


@dataclass(frozen=True)
class Ambiguous:
    candidates: Tuple[CandidateInfo, ...]

    def __post_init__(self):
        distinct = {c.entity_id for c in self.candidates}
        if len(distinct) < 2:
            raise ValueError(
                f"Ambiguous result needs at least 2 distinct candidate IDs, got {sorted(distinct)}"
            )

    @property
    def status(self) -> ResolutionStatus:
        return ResolutionStatus.AMBIGUOUS


@dataclass(frozen=True)
class Unmapped:
    candidates: Tuple[CandidateInfo, ...] = field(default_factory=tuple)

    @property
    def status(self) -> ResolutionStatus:
        return ResolutionStatus.UNMAPPED


ResolvedId = Union[Ok, Ambiguous, Unmapped]
