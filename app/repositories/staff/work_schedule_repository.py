"""
Work schedule repository (the schedule store).

Schedule rows are written by the staffing process; the engine only reads them.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.base.enums import ScheduleStatus
from app.models.staff.staff_member import StaffMember
from app.models.staff.work_schedule import WorkSchedule
from app.repositories.base.base_repository import BaseRepository


class WorkScheduleRepository(BaseRepository[WorkSchedule]):
    """Schedule entries per staff member and date."""

    def __init__(self, db: Session):
        super().__init__(WorkSchedule, db)

    def get_for_date(
        self,
        schedule_date: date,
        staff_id: Optional[str] = None,
        active_staff_only: bool = True,
    ) -> List[WorkSchedule]:
        """
        All entries on a date, ordered by staff and start time.

        Args:
            schedule_date: Date to load
            staff_id: Optional restriction to one staff member
            active_staff_only: Skip entries of inactive staff members
        """
        stmt = select(WorkSchedule).where(WorkSchedule.date == schedule_date)
        if staff_id is not None:
            stmt = stmt.where(WorkSchedule.staff_id == staff_id)
        if active_staff_only:
            stmt = stmt.join(StaffMember, StaffMember.id == WorkSchedule.staff_id).where(
                StaffMember.is_active.is_(True)
            )
        return self._all(stmt.order_by(WorkSchedule.staff_id, WorkSchedule.start_time))

    def get_available_in_range(self, start_date: date, end_date: date) -> List[WorkSchedule]:
        """'available' entries of active staff between two dates inclusive."""
        stmt = (
            select(WorkSchedule)
            .join(StaffMember, StaffMember.id == WorkSchedule.staff_id)
            .where(
                WorkSchedule.date >= start_date,
                WorkSchedule.date <= end_date,
                WorkSchedule.status == ScheduleStatus.AVAILABLE,
                StaffMember.is_active.is_(True),
            )
            .order_by(WorkSchedule.date, WorkSchedule.staff_id, WorkSchedule.start_time)
        )
        return self._all(stmt)
