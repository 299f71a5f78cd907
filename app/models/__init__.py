"""
Database models for the spa booking engine.

Importing this package registers every table with ``Base.metadata``.
"""

from app.models.base import Base, BookingStatus, ScheduleStatus
from app.models.booking.booking import Booking
from app.models.room.room import Room
from app.models.staff.staff_member import StaffMember
from app.models.staff.work_schedule import WorkSchedule
from app.models.treatment.service import Service

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "Room",
    "ScheduleStatus",
    "Service",
    "StaffMember",
    "WorkSchedule",
]
