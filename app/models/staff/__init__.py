from app.models.staff.staff_member import StaffMember
from app.models.staff.work_schedule import WorkSchedule

__all__ = ["StaffMember", "WorkSchedule"]
