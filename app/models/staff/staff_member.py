"""
Staff member model.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base.base_model import TimestampModel

if TYPE_CHECKING:
    from app.models.staff.work_schedule import WorkSchedule

__all__ = ["StaffMember"]


class StaffMember(TimestampModel):
    """
    Therapist who performs treatments.

    ``specializations`` lists service categories; an empty list means the
    staff member's specializations are not tracked.
    """

    __tablename__ = "staff_members"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    specializations: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    schedules: Mapped[List["WorkSchedule"]] = relationship(
        back_populates="staff",
        cascade="all, delete-orphan",
        order_by="WorkSchedule.start_time",
    )

    def can_perform(self, category: str) -> bool:
        if not self.specializations:
            return True
        wanted = category.lower()
        return any(spec.lower() == wanted for spec in self.specializations)
