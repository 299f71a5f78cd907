"""
Repositories: the catalog, schedule and booking stores used by the engine.
"""

from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.room.room_repository import RoomRepository
from app.repositories.staff.staff_repository import StaffRepository
from app.repositories.staff.work_schedule_repository import WorkScheduleRepository
from app.repositories.treatment.service_repository import ServiceRepository

__all__ = [
    "BookingRepository",
    "RoomRepository",
    "ServiceRepository",
    "StaffRepository",
    "WorkScheduleRepository",
]
