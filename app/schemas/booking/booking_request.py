# --- File: app/schemas/booking/booking_request.py ---
"""
Booking request schemas.

Times accept the 24-hour ``HH:MM`` form and the 12-hour ``h:MM AM/PM``
form shown in slot listings.
"""

from __future__ import annotations

from datetime import date as Date, time as Time
from typing import Optional

from pydantic import Field, field_validator

from app.models.base.enums import BookingStatus
from app.schemas.common.base import BaseCreateSchema, BaseUpdateSchema
from app.utils.date_utils import parse_time

__all__ = [
    "BookingCreate",
    "BookingStatusUpdate",
    "BookingReschedule",
]


class BookingCreate(BaseCreateSchema):
    """
    Request to book a service.

    The room and staff member are allocated by the engine unless
    ``staff_id`` or ``room_id`` restrict the candidates.
    """

    service_id: str = Field(..., min_length=1, description="Service to book")
    date: Date = Field(..., description="Appointment date")
    time: Time = Field(..., description="Start time, HH:MM or h:MM AM/PM")
    customer_id: str = Field(..., min_length=1, max_length=64, description="Customer identifier")
    special_requests: Optional[str] = Field(
        None,
        max_length=1000,
        description="Free-text requests from the customer",
    )
    party_size: int = Field(default=1, ge=1, le=10, description="Guests sharing the room")
    staff_id: Optional[str] = Field(None, description="Book with this staff member only")
    room_id: Optional[str] = Field(None, description="Book in this room only")

    @field_validator("time", mode="before")
    @classmethod
    def parse_start_time(cls, v):
        if isinstance(v, str):
            return parse_time(v)
        return v

    @field_validator("special_requests")
    @classmethod
    def blank_requests_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class BookingStatusUpdate(BaseUpdateSchema):
    """Request to move a booking through its lifecycle."""

    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=500, description="Cancellation reason")


class BookingReschedule(BaseUpdateSchema):
    """Request to move a booking to a new date and start time."""

    date: Date
    time: Time

    @field_validator("time", mode="before")
    @classmethod
    def parse_start_time(cls, v):
        if isinstance(v, str):
            return parse_time(v)
        return v
