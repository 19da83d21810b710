from typing import Any, Optional, Tuple
import re
from .schema import (
    MATCH_TYPE_EXACT,
    MATCH_TYPE_PHRASE,
    MATCH_TYPE_BROAD,
    MATCH_TYPE_TARGETING_EXPRESSION,
    MATCH_TYPE_UNKNOWN,
)

_WHITESPACE_RE = re.compile(r'\s+')
_NEGATIVE_RE = re.compile(r'negative', re.IGNORECASE)

# Substring -> normalized match type. Order matters: first match wins.
_MATCH_TYPE_RULES = [
    ("EXACT", MATCH_TYPE_EXACT),
    ("PHRASE", MATCH_TYPE_PHRASE),
    ("BROAD", MATCH_TYPE_BROAD),
    ("TARGET", MATCH_TYPE_TARGETING_EXPRESSION),
]

TargetKey = Tuple[str, str, str, bool]


def normalize_name(value: Any) -> str:
    """Normalize an entity name so textual variants share a lookup key.

    Args:
        value: Raw campaign, ad group, portfolio or targeting text

    Returns:
        Trimmed, lower-cased text with internal whitespace collapsed.
        None becomes an empty string.
    """
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(' ', str(value).strip().lower())


def normalize_match_type(raw: Optional[str]) -> str:
    """Classify match-type text into one of the normalized match types.

    Args:
        raw: Match type as exported (e.g. "Exact", "Negative Phrase",
             "TARGETING_EXPRESSION_PREDEFINED")

    Returns:
        EXACT, PHRASE, BROAD, TARGETING_EXPRESSION or UNKNOWN
    """
    norm = str(raw if raw is not None else "").strip().upper()
    if not norm:
        return MATCH_TYPE_UNKNOWN

    for needle, match_type in _MATCH_TYPE_RULES:
        if needle in norm:
            return match_type

    return MATCH_TYPE_UNKNOWN


def normalize_target_match_type(
    match_type_norm: Optional[str],
    match_type_raw: Optional[str]
) -> str:
    """Match type used in the target composite key.

    Prefers the pre-normalized column and falls back to the raw text.
    Auto-targeting rows often carry no recognizable match type, only a
    mention of "target" in the raw column.
    """
    normalized = normalize_match_type(match_type_norm or match_type_raw or "")
    if normalized != MATCH_TYPE_UNKNOWN:
        return normalized

    raw = str(match_type_raw or "").lower()
    if "target" in raw:
        return MATCH_TYPE_TARGETING_EXPRESSION
    return MATCH_TYPE_UNKNOWN


def infer_is_negative(match_type_raw: Optional[str]) -> bool:
    """True when the raw match type marks a negative keyword or target."""
    return bool(_NEGATIVE_RE.search(str(match_type_raw or "")))


def build_target_key(
    ad_group_id: str,
    expression_norm: str,
    match_type_norm: str,
    is_negative: bool
) -> TargetKey:
    """Composite key identifying a target within an ad group."""
    return (ad_group_id, expression_norm, match_type_norm, bool(is_negative))
