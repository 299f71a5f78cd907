"""
Treatment service catalog model.

A service is referenced by bookings, never embedded: bookings snapshot
the price at creation and keep pointing at the catalog row.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel

__all__ = ["Service"]


class Service(TimestampModel):
    """
    Bookable spa treatment.

    Attributes:
        name: Display name of the treatment
        category: Treatment category matched against staff specializations
        duration_minutes: Length of one booking in minutes
        price: Current price, copied into each booking at creation
        requires_specialized_drainage: Treatment needs a room with drainage equipment
        min_room_capacity: Minimum number of beds the room must have
        allowed_room_ids: Optional explicit set of rooms the treatment may use
        is_active: Whether the treatment can currently be booked
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    requires_specialized_drainage: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Restricts the treatment to rooms with specialized drainage",
    )
    min_room_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    allowed_room_ids: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Explicit room restriction; empty means any compliant room",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_service_duration_positive"),
        CheckConstraint("min_room_capacity >= 1", name="ck_service_min_room_capacity"),
        CheckConstraint("price >= 0", name="ck_service_price_non_negative"),
    )

    @property
    def is_couples_treatment(self) -> bool:
        return self.min_room_capacity >= 2
