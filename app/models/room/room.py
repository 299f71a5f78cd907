"""
Treatment room model.
"""

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel

__all__ = ["Room"]


class Room(TimestampModel):
    """
    Treatment room that hosts exactly one booking at a time.

    Attributes:
        name: Display name
        number: Optional room number shown to staff
        bed_capacity: Number of treatment beds
        has_specialized_drainage: Room has drainage equipment (scrubs, wraps)
        is_active: Whether the room can receive bookings
    """

    __tablename__ = "rooms"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bed_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    has_specialized_drainage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        CheckConstraint("bed_capacity >= 1", name="ck_room_bed_capacity"),
    )

    @property
    def is_multi_bed(self) -> bool:
        return self.bed_capacity >= 2
