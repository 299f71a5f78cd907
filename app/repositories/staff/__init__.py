from app.repositories.staff.staff_repository import StaffRepository
from app.repositories.staff.work_schedule_repository import WorkScheduleRepository

__all__ = ["StaffRepository", "WorkScheduleRepository"]
