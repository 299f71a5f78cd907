# app/api/deps.py
"""
FastAPI dependencies.

Long-lived components (session factory, availability cache, event bus,
clock) are created by the application factory and kept on
``app.state``; request-scoped services are built per request from them.
"""

from typing import Any, Dict, Generator, NoReturn

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events import EventBus
from app.core.exceptions import (
    BaseAppException,
    BookingConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    RoomUnavailableError,
    StaffUnavailableError,
    StorageError,
    ValidationError,
)
from app.services.availability.availability_cache import AvailabilityCache
from app.services.base import ErrorCode, ServiceResult
from app.services.booking.booking_allocation_service import BookingAllocationService
from app.services.booking.booking_status_service import BookingStatusService
from app.services.booking.room_staff_allocator import RoomStaffAllocator
from app.utils.date_utils import Clock

# Usage in a router:
#   from fastapi import Depends, APIRouter
#   from app.api import deps
#
#   @router.get("/bookings/{booking_id}")
#   def read_booking(service = Depends(deps.get_booking_status_service)):
#       ...


# --- Application components -----------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a session from the application's session factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_availability_cache(request: Request) -> AvailabilityCache:
    return request.app.state.availability_cache


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


# --- Services ---------------------------------------------------------------------

def get_allocator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RoomStaffAllocator:
    return RoomStaffAllocator(db, settings)


def get_booking_allocation_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    cache: AvailabilityCache = Depends(get_availability_cache),
    event_bus: EventBus = Depends(get_event_bus),
    clock: Clock = Depends(get_clock),
) -> BookingAllocationService:
    return BookingAllocationService(db, cache=cache, event_bus=event_bus, settings=settings, clock=clock)


def get_booking_status_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    cache: AvailabilityCache = Depends(get_availability_cache),
    event_bus: EventBus = Depends(get_event_bus),
    clock: Clock = Depends(get_clock),
) -> BookingStatusService:
    return BookingStatusService(db, cache=cache, event_bus=event_bus, settings=settings, clock=clock)


# --- Result handling ----------------------------------------------------------------

def raise_for_result(result: ServiceResult) -> None:
    """Raise the API exception matching a failed service result."""
    if result.is_success:
        return
    _raise_error(result)


def _raise_error(result: ServiceResult) -> NoReturn:
    error = result.error
    details: Dict[str, Any] = dict(error.details or {})
    if error.rule:
        details["rule"] = error.rule

    if error.code == ErrorCode.VALIDATION_ERROR:
        field_errors = {error.field: [error.message]} if error.field else None
        raise ValidationError(error.message, field_errors=field_errors, details=details)
    if error.code == ErrorCode.NOT_FOUND:
        raise ResourceNotFoundError(
            details.get("resource_type", "Resource"),
            details.get("resource_id"),
            message=error.message,
        )
    if error.code == ErrorCode.ROOM_UNAVAILABLE:
        raise RoomUnavailableError(error.message, details=details)
    if error.code == ErrorCode.STAFF_UNAVAILABLE:
        raise StaffUnavailableError(error.message, details=details)
    if error.code == ErrorCode.BOOKING_CONFLICT:
        raise BookingConflictError(error.message, details=details)
    if error.code == ErrorCode.INVALID_STATE:
        raise InvalidStatusTransitionError(
            details.get("current_status", "unknown"),
            details.get("requested_status", "unknown"),
            message=error.message,
        )
    if error.code == ErrorCode.STORAGE_ERROR:
        raise StorageError(error.message)
    raise BaseAppException(error.message)
