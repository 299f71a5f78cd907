# --- File: app/schemas/booking/booking_response.py ---
"""
Booking response schemas.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.schemas.common.base import BaseResponseSchema
from app.utils.date_utils import format_display_time, format_time

__all__ = [
    "BookingResponse",
    "BookingEnvelope",
    "BookingListResponse",
    "StaffScheduleEntryResponse",
    "StaffScheduleResponse",
]


class BookingResponse(BaseResponseSchema):
    """
    Booking as returned by the API.

    Times are ``HH:MM`` strings; ``display_time`` is the 12-hour form.
    """

    id: str
    customer_id: str
    service_id: str
    service_name: Optional[str] = None
    staff_id: str
    staff_name: Optional[str] = None
    room_id: str
    room_name: Optional[str] = None
    date: Date
    start_time: str
    end_time: str
    display_time: str
    party_size: int
    status: str
    total_price: Decimal = Field(..., description="Service price at booking time")
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            customer_id=booking.customer_id,
            service_id=booking.service_id,
            service_name=booking.service.name if booking.service is not None else None,
            staff_id=booking.staff_id,
            staff_name=booking.staff.name if booking.staff is not None else None,
            room_id=booking.room_id,
            room_name=booking.room.name if booking.room is not None else None,
            date=booking.booking_date,
            start_time=format_time(booking.start_time),
            end_time=format_time(booking.end_time),
            display_time=format_display_time(booking.start_time),
            party_size=booking.party_size,
            status=booking.status.value,
            total_price=booking.total_price,
            special_requests=booking.special_requests,
            cancellation_reason=booking.cancellation_reason,
            cancelled_at=booking.cancelled_at,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingEnvelope(BaseResponseSchema):
    booking: BookingResponse
    message: Optional[str] = None


class BookingListResponse(BaseResponseSchema):
    bookings: List[BookingResponse]
    total: int


class StaffScheduleEntryResponse(BaseResponseSchema):
    """A booking on a staff member's schedule with an anonymised customer."""

    booking_id: str
    date: Date
    start_time: str
    end_time: str
    display_time: str
    service_name: str
    room_name: str
    status: str
    customer_name: str

    @classmethod
    def from_entry(cls, entry) -> "StaffScheduleEntryResponse":
        return cls(
            booking_id=entry.booking_id,
            date=entry.date,
            start_time=format_time(entry.start_time),
            end_time=format_time(entry.end_time),
            display_time=format_display_time(entry.start_time),
            service_name=entry.service_name,
            room_name=entry.room_name,
            status=entry.status,
            customer_name=entry.customer_reference,
        )


class StaffScheduleResponse(BaseResponseSchema):
    staff_id: str
    staff_name: Optional[str] = None
    start_date: Date
    end_date: Date
    bookings: List[StaffScheduleEntryResponse]
