"""Booking endpoints: creation, queries, status changes, rescheduling and cancellation."""

from datetime import date as Date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.models.base.enums import BookingStatus
from app.schemas.booking import (
    BookingCreate,
    BookingEnvelope,
    BookingListResponse,
    BookingReschedule,
    BookingResponse,
    BookingStatusUpdate,
)
from app.services.booking.booking_allocation_service import BookingAllocationService
from app.services.booking.booking_status_service import BookingStatusService

router = APIRouter()


@router.post(
    "",
    response_model=BookingEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Book a service",
)
def create_booking(
    payload: BookingCreate,
    service: BookingAllocationService = Depends(deps.get_booking_allocation_service),
) -> BookingEnvelope:
    """
    Allocate a room and staff member and create the booking.

    - 400 when the request is invalid (unknown service, past or too far
      ahead, outside business hours)
    - 409 when no compliant room or staff member is free, or when a
      concurrent request took the slot
    """
    result = service.create_booking(
        payload.service_id,
        payload.date,
        payload.time,
        payload.customer_id,
        special_requests=payload.special_requests,
        party_size=payload.party_size,
        staff_id=payload.staff_id,
        room_id=payload.room_id,
    )
    deps.raise_for_result(result)
    return BookingEnvelope(booking=BookingResponse.from_booking(result.data), message=result.message)


@router.get("", response_model=BookingListResponse, summary="List bookings")
def list_bookings(
    customer_id: Optional[str] = Query(None, alias="customerId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    date: Optional[Date] = Query(None),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    service: BookingStatusService = Depends(deps.get_booking_status_service),
) -> BookingListResponse:
    """Cancelled bookings are only listed when ``status=cancelled`` is requested."""
    result = service.list_bookings(
        customer_id=customer_id,
        staff_id=staff_id,
        booking_date=date,
        status=booking_status,
        limit=limit,
    )
    deps.raise_for_result(result)
    bookings = [BookingResponse.from_booking(b) for b in result.data]
    return BookingListResponse(bookings=bookings, total=len(bookings))


@router.get("/{booking_id}", response_model=BookingEnvelope, summary="Get a booking")
def get_booking(
    booking_id: str,
    service: BookingStatusService = Depends(deps.get_booking_status_service),
) -> BookingEnvelope:
    result = service.get_booking(booking_id)
    deps.raise_for_result(result)
    return BookingEnvelope(booking=BookingResponse.from_booking(result.data))


@router.patch("/{booking_id}/status", response_model=BookingEnvelope, summary="Change booking status")
def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    service: BookingStatusService = Depends(deps.get_booking_status_service),
) -> BookingEnvelope:
    result = service.change_status(booking_id, payload.status, reason=payload.reason)
    deps.raise_for_result(result)
    return BookingEnvelope(booking=BookingResponse.from_booking(result.data), message=result.message)


@router.put("/{booking_id}/reschedule", response_model=BookingEnvelope, summary="Reschedule a booking")
def reschedule_booking(
    booking_id: str,
    payload: BookingReschedule,
    service: BookingStatusService = Depends(deps.get_booking_status_service),
) -> BookingEnvelope:
    result = service.reschedule_booking(booking_id, payload.date, payload.time)
    deps.raise_for_result(result)
    return BookingEnvelope(booking=BookingResponse.from_booking(result.data), message=result.message)


@router.delete("/{booking_id}", response_model=BookingEnvelope, summary="Cancel a booking")
def cancel_booking(
    booking_id: str,
    reason: Optional[str] = Query(None, max_length=500),
    service: BookingStatusService = Depends(deps.get_booking_status_service),
) -> BookingEnvelope:
    """The booking is kept with status ``cancelled``; its slot is free again immediately."""
    result = service.cancel_booking(booking_id, reason=reason)
    deps.raise_for_result(result)
    return BookingEnvelope(booking=BookingResponse.from_booking(result.data), message=result.message)
