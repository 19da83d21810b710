"""
Temporal validity checks for name history and manual overrides.

All comparisons are on calendar dates. Timestamps are reduced to their
date part, so a report exported at 23:59 on a given day resolves exactly
like one exported at midnight.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

DateLike = Union[date, datetime, str]

_ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')


def to_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Coerce a date-like value to a calendar date.

    Accepts date objects, datetimes (the date part is used) and ISO strings.
    For ISO timestamps only the leading YYYY-MM-DD is read.

    Args:
        value: date, datetime, ISO string, or None

    Returns:
        date, or None if value is None or an empty string

    Raises:
        ValueError: If value cannot be read as a calendar date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        match = _ISO_DATE_RE.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)
    raise ValueError(f"Expected a calendar date (YYYY-MM-DD), got {value!r}")


def is_within_range(
    ref_date: DateLike,
    valid_from: Optional[DateLike] = None,
    valid_to: Optional[DateLike] = None
) -> bool:
    """
    Check whether a validity interval covers a reference date.

    A missing bound is unbounded. Both bounds are inclusive.

    Args:
        ref_date: Reference date being resolved
        valid_from: First day the interval applies (None = since forever)
        valid_to: Last day the interval applies (None = still valid)

    Returns:
        True if ref_date falls inside the interval
    """
    ref = to_date(ref_date)
    if ref is None:
        raise ValueError("Reference date is required")

    start = to_date(valid_from)
    if start is not None and ref < start:
        return False

    end = to_date(valid_to)
    if end is not None and ref > end:
        return False

    return True


def add_days(value: DateLike, days: int) -> date:
    """Shift a calendar date by a number of days."""
    base = to_date(value)
    if base is None:
        raise ValueError("Cannot shift an empty date")
    return base + timedelta(days=days)


def iso_or_none(value: Any) -> Optional[str]:
    """ISO representation of a date-like value for JSON payloads."""
    parsed = to_date(value)
    return parsed.isoformat() if parsed is not None else None
