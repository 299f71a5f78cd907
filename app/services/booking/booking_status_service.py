"""
Booking lifecycle: status transitions, cancellation, rescheduling and
read access to bookings and staff schedules.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings, settings as default_settings
from app.core.events import BookingEvent, EventBus
from app.core.exceptions import BookingConflictError, StorageError
from app.models.base.enums import BookingStatus
from app.models.booking.booking import Booking
from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.staff.staff_repository import StaffRepository
from app.services.availability.availability_cache import AvailabilityCache
from app.services.base import BaseService, ServiceResult
from app.services.booking.booking_allocation_service import validate_schedule
from app.services.booking.room_staff_allocator import RoomStaffAllocator
from app.utils.date_utils import Clock, add_minutes, format_time, spa_clock
from app.utils.formatters import customer_reference

# Allowed status changes; statuses without an entry are terminal
STATUS_TRANSITIONS: Dict[BookingStatus, frozenset] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
}

RESCHEDULABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

DEFAULT_CANCELLATION_REASON = "Cancelled by customer"


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in STATUS_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class StaffScheduleEntry:
    """A booking as shown on a staff member's schedule."""

    booking_id: str
    date: date
    start_time: time
    end_time: time
    service_name: str
    room_name: str
    status: str
    customer_reference: str


class BookingStatusService(BaseService[BookingRepository]):
    """
    Status changes and moves of existing bookings.

    Every successful write invalidates the availability cache for the
    touched dates before returning and publishes a booking event.
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
        self.allocator = allocator or RoomStaffAllocator(db_session, self.settings)
        self.staff = StaffRepository(db_session)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> ServiceResult[Booking]:
        try:
            booking = self.repository.reload(booking_id)
        except StorageError as e:
            return self._handle_exception(e, "get booking", entity_ref=booking_id)
        if booking is None:
            return ServiceResult.not_found("Booking", booking_id)
        return ServiceResult.success(booking)

    def list_bookings(
        self,
        *,
        customer_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        booking_date: Optional[date] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
    ) -> ServiceResult[List[Booking]]:
        """List bookings; cancelled bookings are hidden unless a status filter asks for them."""
        if status is not None:
            statuses = [status]
        else:
            statuses = [s for s in BookingStatus if s is not BookingStatus.CANCELLED]
        try:
            bookings = self.repository.search(
                customer_id=customer_id,
                staff_id=staff_id,
                booking_date=booking_date,
                statuses=statuses,
                limit=limit,
            )
        except StorageError as e:
            return self._handle_exception(e, "list bookings")
        return ServiceResult.success(bookings, metadata={"count": len(bookings)})

    def staff_schedule(self, staff_id: str, start_date: date, end_date: date) -> ServiceResult[List[StaffScheduleEntry]]:
        """Blocking bookings of a staff member between two dates inclusive, with anonymised customers."""
        if end_date < start_date:
            return ServiceResult.validation_failure("End date must not be before start date", field="end_date")
        member = self.staff.find_by_id(staff_id)
        if member is None:
            return ServiceResult.not_found("Staff member", staff_id)

        try:
            bookings = self.repository.for_staff_between(staff_id, start_date, end_date)
        except StorageError as e:
            return self._handle_exception(e, "load staff schedule", entity_ref=staff_id)

        entries = [
            StaffScheduleEntry(
                booking_id=booking.id,
                date=booking.booking_date,
                start_time=booking.start_time,
                end_time=booking.end_time,
                service_name=booking.service.name,
                room_name=booking.room.name,
                status=booking.status.value,
                customer_reference=customer_reference(booking.customer_id),
            )
            for booking in bookings
        ]
        return ServiceResult.success(entries, metadata={"staff_name": member.name})

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def change_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        reason: Optional[str] = None,
    ) -> ServiceResult[Booking]:
        """
        Move a booking to ``new_status`` if the lifecycle allows it.

        The change is a compare-and-set on the current status, so two
        concurrent changes of the same booking cannot both succeed.
        """
        new_status = BookingStatus(new_status)
        found = self.get_booking(booking_id)
        if not found:
            return found
        booking = found.data
        old_status = booking.status

        if not can_transition(old_status, new_status):
            return self._invalid_transition(booking_id, old_status, new_status)

        fields: Dict[str, Any] = {}
        if new_status is BookingStatus.CANCELLED:
            fields["cancellation_reason"] = reason or DEFAULT_CANCELLATION_REASON
            fields["cancelled_at"] = datetime.now(timezone.utc)

        try:
            changed = self.repository.transition_status(booking_id, old_status, new_status, **fields)
            if not changed:
                self._rollback()
                current = self.repository.reload(booking_id)
                current_status = current.status if current is not None else old_status
                return self._invalid_transition(booking_id, current_status, new_status)
            self._commit()
            booking = self.repository.reload(booking_id)
        except StorageError as e:
            return self._handle_exception(e, "change booking status", entity_ref=booking_id)

        self._invalidate(booking.booking_date)
        self._publish(
            BookingEvent(
                BookingEvent.STATUS_CHANGED,
                booking_id=booking_id,
                booking_date=booking.booking_date,
                old_status=old_status.value,
                new_status=new_status.value,
                data={"reason": fields.get("cancellation_reason")},
            )
        )
        self._logger.info(
            "Booking status changed",
            extra={"booking_id": booking_id, "old_status": old_status.value, "new_status": new_status.value},
        )
        return ServiceResult.success(booking, message=f"Booking {new_status.value}")

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> ServiceResult[Booking]:
        """Cancel a booking; its room and staff member become free immediately."""
        return self.change_status(booking_id, BookingStatus.CANCELLED, reason=reason)

    # -------------------------------------------------------------------------
    # Rescheduling
    # -------------------------------------------------------------------------

    def reschedule_booking(
        self,
        booking_id: str,
        new_date: date,
        new_start_time: time,
    ) -> ServiceResult[Booking]:
        """
        Move a pending or confirmed booking to a new date and time.

        The booking keeps its room and staff member when they are still
        free; otherwise a new pair is allocated with the same rules as a
        new booking. The old interval never blocks the new one.
        """
        found = self.get_booking(booking_id)
        if not found:
            return found
        booking = found.data

        if booking.status not in RESCHEDULABLE_STATUSES:
            return ServiceResult.invalid_state(
                f"Cannot reschedule a booking with status {booking.status.value}",
                details={"booking_id": booking_id, "current_status": booking.status.value},
            )

        service = booking.service
        invalid = validate_schedule(self.settings, self.clock(), new_date, new_start_time, service.duration_minutes)
        if invalid is not None:
            return invalid

        old_date = booking.booking_date
        old_start = booking.start_time
        new_end = add_minutes(new_start_time, service.duration_minutes)

        allocation = self.allocator.allocate(
            booking.service_id,
            new_date,
            new_start_time,
            new_end,
            booking.party_size,
            exclude_booking_id=booking_id,
            preferred_room_id=booking.room_id,
            preferred_staff_id=booking.staff_id,
        )
        if not allocation:
            return allocation

        chosen = allocation.data
        try:
            moved = self.repository.atomic_reschedule(
                booking_id,
                booking_date=new_date,
                start_time=new_start_time,
                end_time=new_end,
                room_id=chosen.room_id,
                staff_id=chosen.staff_id,
                expected_statuses=RESCHEDULABLE_STATUSES,
            )
            self._commit()
        except BookingConflictError as e:
            self._logger.warning("Booking reschedule lost a race", extra={"booking_id": booking_id, **e.details})
            return ServiceResult.conflict(e.message, details=e.details)
        except StorageError as e:
            return self._handle_exception(e, "reschedule booking", entity_ref=booking_id)

        self._invalidate(old_date)
        if new_date != old_date:
            self._invalidate(new_date)
        self._publish(
            BookingEvent(
                BookingEvent.RESCHEDULED,
                booking_id=booking_id,
                booking_date=new_date,
                old_status=moved.status.value,
                new_status=moved.status.value,
                data={
                    "old_date": old_date.isoformat(),
                    "old_start_time": format_time(old_start),
                    "new_start_time": format_time(new_start_time),
                    "room_id": moved.room_id,
                    "staff_id": moved.staff_id,
                },
            )
        )
        self._logger.info(
            "Booking rescheduled",
            extra={"booking_id": booking_id, "old_date": old_date.isoformat(), "new_date": new_date.isoformat()},
        )
        return ServiceResult.success(moved, message="Booking rescheduled")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _invalid_transition(self, booking_id: str, current: BookingStatus, requested: BookingStatus) -> ServiceResult:
        return ServiceResult.invalid_state(
            f"Cannot change booking status from {current.value} to {requested.value}",
            details={
                "booking_id": booking_id,
                "current_status": current.value,
                "requested_status": requested.value,
                "allowed": sorted(s.value for s in STATUS_TRANSITIONS.get(current, ())),
            },
        )

    def _invalidate(self, day: date) -> None:
        if self.cache is not None:
            self.cache.invalidate(day)

    def _publish(self, event: BookingEvent) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)
