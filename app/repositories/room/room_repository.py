"""
Treatment room repository.
"""

from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.room.room import Room
from app.repositories.base.base_repository import BaseRepository


class RoomRepository(BaseRepository[Room]):
    """Read access to the room catalog."""

    def __init__(self, db: Session):
        super().__init__(Room, db)

    def list_active(self, room_ids: Optional[Sequence[str]] = None) -> List[Room]:
        """
        Active rooms ordered by id.

        Args:
            room_ids: Optional restriction to these rooms
        """
        stmt = select(Room).where(Room.is_active.is_(True))
        if room_ids is not None:
            stmt = stmt.where(Room.id.in_(list(room_ids)))
        return self._all(stmt.order_by(Room.id))
