"""
Staff member repository.
"""

from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.staff.staff_member import StaffMember
from app.repositories.base.base_repository import BaseRepository


class StaffRepository(BaseRepository[StaffMember]):
    """Read access to staff members."""

    def __init__(self, db: Session):
        super().__init__(StaffMember, db)

    def list_active(self, staff_ids: Optional[Sequence[str]] = None) -> List[StaffMember]:
        stmt = select(StaffMember).where(StaffMember.is_active.is_(True))
        if staff_ids is not None:
            stmt = stmt.where(StaffMember.id.in_(list(staff_ids)))
        return self._all(stmt.order_by(StaffMember.id))
