"""Staff schedule endpoint."""

from datetime import date as Date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.schemas.booking import StaffScheduleEntryResponse, StaffScheduleResponse
from app.services.booking.booking_status_service import BookingStatusService
from app.utils.date_utils import Clock

router = APIRouter()

DEFAULT_SCHEDULE_DAYS = 7


@router.get(
    "/{staff_id}/schedule",
    response_model=StaffScheduleResponse,
    summary="Bookings assigned to a staff member",
)
def get_staff_schedule(
    staff_id: str,
    start_date: Optional[Date] = Query(None, alias="startDate"),
    end_date: Optional[Date] = Query(None, alias="endDate"),
    service: BookingStatusService = Depends(deps.get_booking_status_service),
    clock: Clock = Depends(deps.get_clock),
) -> StaffScheduleResponse:
    """Defaults to the week starting today. Customers are shown as anonymised references."""
    start = start_date or clock().date()
    end = end_date or start + timedelta(days=DEFAULT_SCHEDULE_DAYS - 1)

    result = service.staff_schedule(staff_id, start, end)
    deps.raise_for_result(result)
    return StaffScheduleResponse(
        staff_id=staff_id,
        staff_name=result.metadata.get("staff_name"),
        start_date=start,
        end_date=end,
        bookings=[StaffScheduleEntryResponse.from_entry(entry) for entry in result.data],
    )
