"""
Staff working-hour entries.

Entries are created by the staffing process before bookings can be
allocated against them. A staff member may hold several disjoint
entries on one date (split shifts, breaks).
"""

from datetime import date as Date, time as Time
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date as SQLDate, Enum, ForeignKey, Index, String, Time as SQLTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base.base_model import TimestampModel
from app.models.base.enums import ScheduleStatus, enum_values

if TYPE_CHECKING:
    from app.models.staff.staff_member import StaffMember

__all__ = ["WorkSchedule"]


class WorkSchedule(TimestampModel):
    """A staff member's declared working interval and status for a date."""

    __tablename__ = "work_schedules"

    staff_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("staff_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[Date] = mapped_column(SQLDate, nullable=False)
    start_time: Mapped[Time] = mapped_column(SQLTime, nullable=False)
    end_time: Mapped[Time] = mapped_column(SQLTime, nullable=False)
    status: Mapped[ScheduleStatus] = mapped_column(
        Enum(ScheduleStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=ScheduleStatus.AVAILABLE,
    )

    staff: Mapped["StaffMember"] = relationship(back_populates="schedules")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_work_schedule_time_order"),
        Index("ix_work_schedules_date_staff", "date", "staff_id"),
    )

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start

    def covers(self, start: Time, end: Time) -> bool:
        return self.start_time <= start and end <= self.end_time
