"""
Booking creation.

Validates a request, allocates a room and staff member, and commits the
booking through the booking store's atomic conditional insert. A lost
race is retried once against fresh data; a second loss is reported to
the caller as a booking conflict.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings, settings as default_settings
from app.core.events import BookingEvent, EventBus
from app.core.exceptions import BookingConflictError, StorageError
from app.models.base.base_model import generate_id
from app.models.base.enums import BookingStatus
from app.models.booking.booking import Booking
from app.models.treatment.service import Service
from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.treatment.service_repository import ServiceRepository
from app.services.availability.availability_cache import AvailabilityCache
from app.services.base import BaseService, ErrorCode, ServiceResult
from app.services.booking.room_staff_allocator import Allocation, RoomStaffAllocator
from app.utils.date_utils import Clock, add_minutes, format_time, is_whole_minute, minutes_of, spa_clock
from app.utils.formatters import money

MAX_ATTEMPTS = 2


def validate_schedule(
    settings: Settings,
    now: datetime,
    booking_date: date,
    start_time: time,
    duration_minutes: int,
) -> Optional[ServiceResult]:
    """
    Lead time, horizon and business-hours checks for an interval starting
    at ``start_time`` on ``booking_date``. ``now`` is wall-clock time in the
    spa timezone.
    """
    now = now.replace(tzinfo=None)
    today = now.date()
    requested = {"date": booking_date.isoformat(), "time": format_time(start_time)}

    if not is_whole_minute(start_time):
        return ServiceResult.validation_failure(
            "Start time must be a whole minute",
            field="time",
            details={**requested, "time": start_time.isoformat()},
        )

    if booking_date < today:
        return ServiceResult.validation_failure("Booking date is in the past", field="date", details=requested)

    horizon = today + timedelta(days=settings.MAX_ADVANCE_BOOKING_DAYS)
    if booking_date > horizon:
        return ServiceResult.validation_failure(
            f"Bookings can be made at most {settings.MAX_ADVANCE_BOOKING_DAYS} days in advance",
            field="date",
            details={**requested, "latest_date": horizon.isoformat()},
        )

    starts_at = datetime.combine(booking_date, start_time)
    if starts_at < now:
        return ServiceResult.validation_failure("Booking time is in the past", field="time", details=requested)
    if starts_at < now + timedelta(hours=settings.MIN_ADVANCE_BOOKING_HOURS):
        return ServiceResult.validation_failure(
            f"Bookings must be made at least {settings.MIN_ADVANCE_BOOKING_HOURS} hours in advance",
            field="time",
            details=requested,
        )

    opens = minutes_of(settings.BUSINESS_HOURS_START)
    closes = minutes_of(settings.BUSINESS_HOURS_END)
    start = minutes_of(start_time)
    if start < opens or start + duration_minutes > closes:
        return ServiceResult.validation_failure(
            "Requested time is outside business hours",
            field="time",
            details={
                **requested,
                "duration_minutes": duration_minutes,
                "business_hours_start": format_time(settings.BUSINESS_HOURS_START),
                "business_hours_end": format_time(settings.BUSINESS_HOURS_END),
            },
        )
    return None


class BookingAllocationService(BaseService[BookingRepository]):
    """
    Create bookings that never overlap another booking's room or staff member.

    Features:
    - Request validation (service, lead time, horizon, business hours)
    - Rule-based room and staff allocation
    - Atomic conditional insert with a single retry on a lost race
    - Synchronous cache invalidation and booking events
    """

    def __init__(
        self,
        db_session: Session,
        cache: Optional[AvailabilityCache] = None,
        event_bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        repository: Optional[BookingRepository] = None,
        allocator: Optional[RoomStaffAllocator] = None,
    ):
        super().__init__(repository or BookingRepository(db_session), db_session)
        self.settings = settings or default_settings
        self.cache = cache
        self.event_bus = event_bus
        self.clock = clock or spa_clock(self.settings.TIMEZONE)
        self.services = ServiceRepository(db_session)
        self.allocator = allocator or RoomStaffAllocator(db_session, self.settings)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_request(
        self,
        service: Optional[Service],
        service_id: str,
        booking_date: date,
        start_time: time,
        customer_id: str,
        party_size: int = 1,
    ) -> Optional[ServiceResult]:
        """Return a validation failure, or None when the request is acceptable."""
        if service is None or not service.is_active:
            return ServiceResult.validation_failure(
                "Service not found or inactive", field="service_id", details={"service_id": service_id}
            )
        if not customer_id or not str(customer_id).strip():
            return ServiceResult.validation_failure("Customer ID is required", field="customer_id")
        if party_size < 1:
            return ServiceResult.validation_failure("Party size must be at least 1", field="party_size")

        return self.validate_schedule(booking_date, start_time, service.duration_minutes)

    def validate_schedule(self, booking_date: date, start_time: time, duration_minutes: int) -> Optional[ServiceResult]:
        return validate_schedule(self.settings, self.clock(), booking_date, start_time, duration_minutes)

    # -------------------------------------------------------------------------
    # Booking creation
    # -------------------------------------------------------------------------

    def create_booking(
        self,
        service_id: str,
        booking_date: date,
        start_time: time,
        customer_id: str,
        special_requests: Optional[str] = None,
        party_size: int = 1,
        staff_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> ServiceResult[Booking]:
        """
        Create a booking.

        Args:
            service_id: Requested service
            booking_date: Appointment date
            start_time: Appointment start
            customer_id: Customer identifier
            special_requests: Free text from the customer
            party_size: Guests sharing the room
            staff_id: Restrict allocation to this staff member
            room_id: Restrict allocation to this room

        Returns:
            ServiceResult with the committed Booking, or a VALIDATION_ERROR,
            ROOM_UNAVAILABLE, STAFF_UNAVAILABLE, BOOKING_CONFLICT or
            STORAGE_ERROR failure
        """
        service = self.services.find_by_id(service_id)
        invalid = self.validate_request(service, service_id, booking_date, start_time, customer_id, party_size)
        if invalid is not None:
            return invalid

        end_time = add_minutes(start_time, service.duration_minutes)
        price = money(service.price)
        conflict_details = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            allocation_result = self.allocator.allocate(
                service_id,
                booking_date,
                start_time,
                end_time,
                party_size,
                staff_id=staff_id,
                room_id=room_id,
            )
            if not allocation_result:
                if attempt > 1 and allocation_result.error_code in (
                    ErrorCode.ROOM_UNAVAILABLE,
                    ErrorCode.STAFF_UNAVAILABLE,
                ):
                    # The resources were taken by the request that won the race
                    return self._conflict(conflict_details, allocation_result)
                return allocation_result

            booking = self._build_booking(
                allocation_result.data, customer_id, price, party_size, special_requests
            )
            try:
                created = self.repository.atomic_insert(booking)
                self._commit()
            except BookingConflictError as e:
                conflict_details = e.details
                self._logger.warning(
                    "Booking insert lost a race",
                    extra={"attempt": attempt, "booking_id": booking.id, **e.details},
                )
                continue
            except StorageError as e:
                return self._handle_exception(e, "create booking", entity_ref=booking.id)

            self._after_write(created, booking_date)
            self._logger.info(
                "Booking created",
                extra={
                    "booking_id": created.id,
                    "room_id": created.room_id,
                    "staff_id": created.staff_id,
                    "date": booking_date.isoformat(),
                    "start_time": format_time(start_time),
                    "attempt": attempt,
                },
            )
            return ServiceResult.success(created, message="Booking created")

        return self._conflict(conflict_details)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _build_booking(
        self,
        allocation: Allocation,
        customer_id: str,
        price,
        party_size: int,
        special_requests: Optional[str],
    ) -> Booking:
        return Booking(
            id=generate_id(),
            customer_id=str(customer_id),
            service_id=allocation.service_id,
            staff_id=allocation.staff_id,
            room_id=allocation.room_id,
            booking_date=allocation.booking_date,
            start_time=allocation.start_time,
            end_time=allocation.end_time,
            party_size=party_size,
            status=BookingStatus(self.settings.BOOKING_INITIAL_STATUS),
            total_price=price,
            special_requests=special_requests,
        )

    def _after_write(self, booking: Booking, booking_date: date) -> None:
        if self.cache is not None:
            self.cache.invalidate(booking_date)
        if self.event_bus is not None:
            self.event_bus.publish(
                BookingEvent(
                    BookingEvent.CREATED,
                    booking_id=booking.id,
                    booking_date=booking_date,
                    new_status=booking.status.value,
                    data={"room_id": booking.room_id, "staff_id": booking.staff_id},
                )
            )

    def _conflict(self, details, last_result: Optional[ServiceResult] = None) -> ServiceResult:
        details = dict(details or {})
        if last_result is not None and last_result.error is not None:
            details["reallocation"] = last_result.error.code.value
        return ServiceResult.conflict(
            "The requested time was booked by another request",
            details=details,
        )
