"""Availability read endpoints and explicit room/staff validation."""

from datetime import date as Date
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.config.settings import Settings
from app.core.exceptions import ValidationError
from app.services.availability.availability_cache import AvailabilityCache
from app.services.booking.room_staff_allocator import RoomStaffAllocator
from app.schemas.availability import (
    AvailabilityValidationRequest,
    AvailabilityValidationResponse,
    DateAvailabilityListResponse,
    DateAvailabilityResponse,
    TimeSlotResponse,
    TimeSlotsResponse,
)
from app.utils.date_utils import Clock, DateUtilsError, add_minutes

router = APIRouter()


@router.get(
    "",
    response_model=Union[TimeSlotsResponse, DateAvailabilityListResponse],
    summary="Time slots for a date, or a summary of upcoming dates",
)
def get_availability(
    date: Optional[Date] = Query(None, description="Date to list time slots for"),
    service: Optional[str] = Query(None, description="Service id; sets the slot duration and room rules"),
    staff: Optional[str] = Query(None, description="Only count this staff member"),
    room: Optional[str] = Query(None, description="Only count this room"),
    start_date: Optional[Date] = Query(None, alias="startDate", description="First summarised date"),
    days: Optional[int] = Query(None, ge=1, description="Number of summarised dates"),
    cache: AvailabilityCache = Depends(deps.get_availability_cache),
    settings: Settings = Depends(deps.get_settings),
    clock: Clock = Depends(deps.get_clock),
):
    """
    With ``date``: candidate start times across business hours with the
    number of free staff members and rooms at each.

    Without ``date``: one summary per date starting at ``startDate``
    (default today) for ``days`` dates.
    """
    if date is not None:
        slots = cache.get_time_slots(date, service_id=service, staff_id=staff, room_id=room)
        return TimeSlotsResponse(
            time_slots=[TimeSlotResponse.model_validate(slot.to_dict()) for slot in slots]
        )

    first = start_date or clock().date()
    summaries = cache.get_date_summary(first, days or settings.DEFAULT_SUMMARY_DAYS)
    return DateAvailabilityListResponse(
        date_availability=[DateAvailabilityResponse.model_validate(s.to_dict()) for s in summaries]
    )


@router.post(
    "/validate",
    response_model=AvailabilityValidationResponse,
    summary="Validate an explicit room and staff member for an interval",
)
def validate_availability(
    payload: AvailabilityValidationRequest,
    allocator: RoomStaffAllocator = Depends(deps.get_allocator),
):
    end_time = payload.end_time
    if end_time is None:
        try:
            end_time = add_minutes(payload.start_time, payload.duration)
        except DateUtilsError as e:
            raise ValidationError(str(e), field_errors={"duration": [str(e)]})

    result = allocator.check_resources(
        payload.room_id,
        payload.staff_id,
        payload.date,
        payload.start_time,
        end_time,
        exclude_booking_id=payload.exclude_booking_id,
        service_id=payload.service_id,
    )
    deps.raise_for_result(result)
    return AvailabilityValidationResponse.from_check(result.data)
