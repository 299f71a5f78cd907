# --- File: app/schemas/availability/availability.py ---
"""
Availability schemas: date summaries, time slots and explicit
room/staff validation.
"""

from __future__ import annotations

from datetime import date as Date, time as Time
from typing import Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from app.schemas.common.base import BaseCreateSchema, BaseResponseSchema
from app.utils.date_utils import format_time, parse_time

__all__ = [
    "TimeSlotResponse",
    "TimeSlotsResponse",
    "DateAvailabilityResponse",
    "DateAvailabilityListResponse",
    "AvailabilityValidationRequest",
    "ConflictDetailResponse",
    "AvailabilityValidationResponse",
]


class TimeSlotResponse(BaseResponseSchema):
    """Availability at one candidate start time."""

    time: str = Field(..., description="Slot start (HH:MM)")
    display_time: str = Field(..., description="Slot start for display, e.g. 9:00 AM")
    end_time: str = Field(..., description="End of the service if started at this slot (HH:MM)")
    available: bool
    available_staff_count: int = Field(..., ge=0)
    available_room_count: int = Field(..., ge=0)
    suggested_staff_id: Optional[str] = None
    suggested_room_id: Optional[str] = None


class TimeSlotsResponse(BaseResponseSchema):
    time_slots: List[TimeSlotResponse]


class DateAvailabilityResponse(BaseResponseSchema):
    """Bookable capacity of one date."""

    date: Date
    total_slots: int = Field(..., ge=0)
    booked_slots: int = Field(..., ge=0)
    available_slots: int = Field(..., ge=0)
    has_availability: bool


class DateAvailabilityListResponse(BaseResponseSchema):
    date_availability: List[DateAvailabilityResponse]


class AvailabilityValidationRequest(BaseCreateSchema):
    """
    Validate an explicit room and staff member for an interval.

    Either ``end_time`` or ``duration`` (minutes, default 60) bounds the
    interval.
    """

    room_id: str = Field(..., min_length=1)
    staff_id: str = Field(..., min_length=1)
    date: Date
    start_time: Time
    end_time: Optional[Time] = None
    duration: int = Field(default=60, ge=1, le=24 * 60)
    service_id: Optional[str] = None
    exclude_booking_id: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_clock_time(cls, v):
        """Accept HH:MM or h:MM AM/PM."""
        if isinstance(v, str):
            return parse_time(v)
        return v

    @model_validator(mode="after")
    def validate_interval(self) -> "AvailabilityValidationRequest":
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class ConflictDetailResponse(BaseResponseSchema):
    """An existing booking that blocks the requested room or staff member."""

    booking_id: str
    conflict_type: str = Field(..., description="room, staff or room_and_staff")
    resource_name: str
    existing_start_time: str
    existing_end_time: str
    customer_name: str = Field(..., description="Anonymised customer reference")

    @classmethod
    def from_detail(cls, detail) -> "ConflictDetailResponse":
        return cls(
            booking_id=detail.booking_id,
            conflict_type=detail.conflict_type,
            resource_name=detail.resource_name,
            existing_start_time=format_time(detail.existing_start_time),
            existing_end_time=format_time(detail.existing_end_time),
            customer_name=detail.customer_reference,
        )


class AvailabilityValidationResponse(BaseResponseSchema):
    is_valid: bool
    room_available: bool
    staff_available: bool
    room_compatible: Optional[bool] = None
    conflicts: List[ConflictDetailResponse] = Field(default_factory=list)
    reasons: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_check(cls, check) -> "AvailabilityValidationResponse":
        return cls(
            is_valid=check.is_valid,
            room_available=check.room_available,
            staff_available=check.staff_available,
            room_compatible=check.room_compatible,
            conflicts=[ConflictDetailResponse.from_detail(c) for c in check.conflicts],
            reasons=dict(check.reasons),
        )
