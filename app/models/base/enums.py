"""
Database enums shared by models, services and schemas.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ScheduleStatus(str, enum.Enum):
    """Status of a staff work schedule entry."""
    AVAILABLE = "available"
    BOOKED = "booked"
    BREAK = "break"
    UNAVAILABLE = "unavailable"


def enum_values(enum_cls):
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]
