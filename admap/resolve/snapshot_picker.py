"""
Choose which bulk snapshot to resolve a report against.

The preferred snapshot is the latest one taken on or before the report's
export date. If the report predates every snapshot, a snapshot taken
shortly afterwards is accepted, since entity names rarely change within a
few days.
"""

from typing import Optional, Sequence

from ..schema import SNAPSHOT_FORWARD_WINDOW_DAYS
from ..temporal import DateLike, to_date


def pick_snapshot(
    exported_at_date: DateLike,
    available_snapshot_dates: Sequence[DateLike],
    forward_window_days: int = SNAPSHOT_FORWARD_WINDOW_DAYS
) -> Optional[DateLike]:
    """
    Pick the bulk snapshot date for a report.

    Args:
        exported_at_date: Date the report was exported
        available_snapshot_dates: Snapshot dates on file (any order, duplicates allowed)
        forward_window_days: How many days after the export date a snapshot may be

    Returns:
        One of the given values, unchanged, or None if no snapshot qualifies:
        - the latest date <= exported_at_date, otherwise
        - the earliest date after exported_at_date within the forward window
    """
    exported = to_date(exported_at_date)
    if exported is None:
        raise ValueError("Export date is required to pick a snapshot")

    # Keep the first original value seen for each calendar date
    by_date = {}
    for value in available_snapshot_dates:
        parsed = to_date(value)
        if parsed is not None and parsed not in by_date:
            by_date[parsed] = value

    on_or_before = [d for d in by_date if d <= exported]
    if on_or_before:
        return by_date[max(on_or_before)]

    after = [
        d for d in by_date
        if 0 < (d - exported).days <= forward_window_days
    ]
    if after:
        return by_date[min(after)]

    return None
