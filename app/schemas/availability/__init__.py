"""
Availability schemas package.
"""

from app.schemas.availability.availability import (
    AvailabilityValidationRequest,
    AvailabilityValidationResponse,
    ConflictDetailResponse,
    DateAvailabilityListResponse,
    DateAvailabilityResponse,
    TimeSlotResponse,
    TimeSlotsResponse,
)

__all__ = [
    "AvailabilityValidationRequest",
    "AvailabilityValidationResponse",
    "ConflictDetailResponse",
    "DateAvailabilityListResponse",
    "DateAvailabilityResponse",
    "TimeSlotResponse",
    "TimeSlotsResponse",
]
