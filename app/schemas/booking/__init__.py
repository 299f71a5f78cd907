"""
Booking schemas package.

This module exports all booking-related schemas for easy importing
across the application.
"""

from app.schemas.booking.booking_request import (
    BookingCreate,
    BookingReschedule,
    BookingStatusUpdate,
)
from app.schemas.booking.booking_response import (
    BookingEnvelope,
    BookingListResponse,
    BookingResponse,
    StaffScheduleEntryResponse,
    StaffScheduleResponse,
)

__all__ = [
    "BookingCreate",
    "BookingReschedule",
    "BookingStatusUpdate",
    "BookingEnvelope",
    "BookingListResponse",
    "BookingResponse",
    "StaffScheduleEntryResponse",
    "StaffScheduleResponse",
]
