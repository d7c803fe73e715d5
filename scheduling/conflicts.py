"""Interval conflict detection over half-open ``[start, end)`` windows.

Nothing here touches storage; callers hand in the reservations they already
fetched for a chamber or a provider.
"""
from typing import Iterable, List, Optional

from scheduling.types import TimeWindow


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    # touching boundaries (a.end == b.start) do not overlap
    return a.start < b.end and b.start < a.end


def has_conflict(existing: Iterable[TimeWindow], proposed: TimeWindow) -> bool:
    """True if ``proposed`` overlaps any of ``existing``."""
    return any(overlaps(window, proposed) for window in existing)


def window_of(booking) -> TimeWindow:
    return TimeWindow(booking.start_time, booking.end_time)


def find_conflicts(bookings: Iterable, proposed: TimeWindow, exclude_booking_id: Optional[int] = None) -> List:
    """
    Return every booking whose window overlaps ``proposed``.

    ``exclude_booking_id`` drops a booking from consideration so an in-place
    edit is not reported as conflicting with itself.
    """
    return [
        b for b in bookings
        if (exclude_booking_id is None or b.id != exclude_booking_id)
        and overlaps(window_of(b), proposed)
    ]
