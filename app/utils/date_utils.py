# app/utils/date_utils.py
from __future__ import annotations

"""
Date and time helpers for the slot grid.

Notes:
- Slot arithmetic works on wall-clock ``time`` values within a single
  day; an interval never crosses midnight.
- "Now" is always taken in the spa's configured timezone (pytz).
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterator

import pytz

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_TWELVE_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")
_TWENTY_FOUR_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


class DateUtilsError(ValueError):
    """Raised when a date or time value cannot be parsed."""
    pass


def spa_clock(timezone_name: str) -> Clock:
    """Return a clock producing aware datetimes in the given timezone."""
    tz = pytz.timezone(timezone_name)

    def now() -> datetime:
        return datetime.now(tz)

    return now


def parse_time(value: str) -> time:
    """
    Parse a slot time.

    Accepts 24-hour ``HH:MM`` (optionally ``HH:MM:00``) and 12-hour
    ``h:MM AM/PM`` forms. Slot times are whole minutes, so a non-zero
    seconds part is rejected.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise DateUtilsError(f"Invalid time '{value}'")

    match = _TWELVE_HOUR.match(value)
    if match:
        hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hours <= 12 or minutes > 59:
            raise DateUtilsError(f"Invalid time '{value}'")
        if meridiem == "PM" and hours != 12:
            hours += 12
        elif meridiem == "AM" and hours == 12:
            hours = 0
        return time(hours, minutes)

    match = _TWENTY_FOUR_HOUR.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3) or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            raise DateUtilsError(f"Invalid time '{value}'")
        if seconds:
            raise DateUtilsError(f"Invalid time '{value}', seconds must be 00")
        return time(hours, minutes)

    raise DateUtilsError(f"Invalid time '{value}', expected HH:MM or h:MM AM/PM")


def format_time(t: time) -> str:
    """Format a time as ``HH:MM``."""
    return t.strftime("%H:%M")


def format_display_time(t: time) -> str:
    """Format a time as ``9:00 AM``."""
    hours = t.hour % 12 or 12
    meridiem = "AM" if t.hour < 12 else "PM"
    return f"{hours}:{t.minute:02d} {meridiem}"


def is_whole_minute(t: time) -> bool:
    return t.second == 0 and t.microsecond == 0


def minutes_of(t: time) -> int:
    return t.hour * 60 + t.minute


def time_from_minutes(total: int) -> time:
    if not 0 <= total < 24 * 60:
        raise DateUtilsError(f"{total} minutes is outside a single day")
    return time(total // 60, total % 60)


def add_minutes(t: time, minutes: int) -> time:
    """Add minutes to a wall-clock time; the result must stay on the same day."""
    return time_from_minutes(minutes_of(t) + minutes)


def time_grid(start: time, end: time, step_minutes: int, duration_minutes: int) -> Iterator[time]:
    """
    Yield candidate start times from ``start`` in ``step_minutes`` steps
    while a ``duration_minutes`` interval still finishes by ``end``.
    """
    current = minutes_of(start)
    close = minutes_of(end)
    while current + duration_minutes <= close:
        yield time_from_minutes(current)
        current += step_minutes


def daterange(start: date, end: date) -> Iterator[date]:
    """
    Yield all dates from start to end inclusive.
    If start > end, yields nothing.
    """
    if start > end:
        return
    for i in range((end - start).days + 1):
        yield start + timedelta(days=i)
