"""
Booking model for spa appointments.

A booking occupies exactly one staff member and one treatment room for
a half-open interval on one date. Rows are never physically deleted;
cancellation is a status transition that keeps the history.
"""

from datetime import date as Date, datetime, time as Time
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date as SQLDate,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time as SQLTime,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base.base_model import TimestampModel
from app.models.base.enums import BookingStatus, enum_values
from app.models.room.room import Room
from app.models.staff.staff_member import StaffMember
from app.models.treatment.service import Service

__all__ = ["Booking"]


class Booking(TimestampModel):
    """
    Spa appointment.

    Attributes:
        customer_id: Identifier supplied by the identity collaborator
        service_id: Booked treatment
        staff_id: Assigned staff member
        room_id: Assigned treatment room
        booking_date: Date of the appointment
        start_time: Interval start (inclusive)
        end_time: Interval end (exclusive)
        party_size: Number of guests sharing the room
        status: Current lifecycle status
        total_price: Service price at creation time
        special_requests: Free text from the customer
        cancellation_reason: Reason recorded on cancellation
        cancelled_at: When the booking was cancelled
    """

    __tablename__ = "bookings"

    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    service_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )
    staff_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("staff_members.id", ondelete="RESTRICT"),
        nullable=False,
    )
    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="RESTRICT"),
        nullable=False,
    )

    booking_date: Mapped[Date] = mapped_column(SQLDate, nullable=False)
    start_time: Mapped[Time] = mapped_column(SQLTime, nullable=False)
    end_time: Mapped[Time] = mapped_column(SQLTime, nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=BookingStatus.CONFIRMED,
        index=True,
    )

    # Pricing snapshot (precision: 10, scale: 2)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    service: Mapped[Service] = relationship(lazy="joined")
    staff: Mapped[StaffMember] = relationship(lazy="joined")
    room: Mapped[Room] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_booking_time_order"),
        CheckConstraint("party_size >= 1", name="ck_booking_party_size"),
        Index("ix_bookings_room_date", "room_id", "booking_date"),
        Index("ix_bookings_staff_date", "staff_id", "booking_date"),
        Index("ix_bookings_date_status", "booking_date", "status"),
    )
