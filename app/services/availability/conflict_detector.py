"""
Interval conflict detection.

Every conflict check in the engine goes through this module: the
in-memory predicate for allocation and slot computation, and the same
predicate as a SQL expression for the atomic booking write.
"""

from typing import Any, Iterable, List, Optional

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

from app.models.base.enums import BookingStatus

# Statuses that no longer hold a room or a staff member
NON_BLOCKING_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.NO_SHOW})
BLOCKING_STATUSES = [status for status in BookingStatus if status not in NON_BLOCKING_STATUSES]


def conflicts(a_start: Any, a_end: Any, b_start: Any, b_end: Any) -> bool:
    """
    Half-open overlap of ``[a_start, a_end)`` and ``[b_start, b_end)``.

    Touching intervals (one ends exactly when the other starts) do not conflict.
    """
    return a_start < b_end and b_start < a_end


def is_blocking(status) -> bool:
    """Whether a booking in this status occupies its room and staff member."""
    return BookingStatus(status) not in NON_BLOCKING_STATUSES


def find_conflicts(
    bookings: Iterable[Any],
    start: Any,
    end: Any,
    *,
    room_id: Optional[str] = None,
    staff_id: Optional[str] = None,
    exclude_booking_id: Optional[str] = None,
) -> List[Any]:
    """
    Return blocking bookings overlapping ``[start, end)``.

    With both ``room_id`` and ``staff_id`` a booking conflicts when it holds
    either resource. With neither, every overlapping booking is returned.
    """
    found = []
    for booking in bookings:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if not is_blocking(booking.status):
            continue
        if room_id is not None or staff_id is not None:
            same_room = room_id is not None and booking.room_id == room_id
            same_staff = staff_id is not None and booking.staff_id == staff_id
            if not (same_room or same_staff):
                continue
        if conflicts(booking.start_time, booking.end_time, start, end):
            found.append(booking)
    return found


def overlap_clause(start_col, end_col, start: Any, end: Any) -> ColumnElement:
    """SQL form of :func:`conflicts` for the row interval ``[start_col, end_col)``."""
    return and_(start_col < end, end_col > start)


__all__ = [
    "BLOCKING_STATUSES",
    "NON_BLOCKING_STATUSES",
    "conflicts",
    "find_conflicts",
    "is_blocking",
    "overlap_clause",
]
