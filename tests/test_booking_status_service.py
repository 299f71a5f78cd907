"""Tests for booking status changes, rescheduling and reads."""

from datetime import date, time, timedelta

import pytest

from app.models.base.enums import BookingStatus
from app.services.base import ErrorCode
from app.services.booking.booking_status_service import (
    DEFAULT_CANCELLATION_REASON,
    BookingStatusService,
    can_transition,
)
from app.utils.formatters import customer_reference
from tests.conftest import FIXED_NOW, TEST_DATE, fixed_clock


@pytest.fixture
def events(event_bus):
    received = []
    event_bus.subscribe("*", received.append)
    return received


@pytest.fixture
def service(db, cache, event_bus, settings):
    return BookingStatusService(db, cache=cache, event_bus=event_bus, settings=settings, clock=fixed_clock)


def _slot(cache, at="10:00"):
    return next(slot for slot in cache.get_time_slots(TEST_DATE) if slot.time == at)


class TestTransitions:
    """Lifecycle rules."""

    @pytest.mark.parametrize(
        "current, target, allowed",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED, True),
            (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
            (BookingStatus.PENDING, BookingStatus.COMPLETED, False),
            (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, True),
            (BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, True),
            (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, True),
            (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, False),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED, False),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, False),
            (BookingStatus.NO_SHOW, BookingStatus.CONFIRMED, False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_confirm_pending_booking(self, spa, service, events):
        booking = spa.booking(status=BookingStatus.PENDING)

        result = service.change_status(booking.id, BookingStatus.CONFIRMED)

        assert result.is_success
        assert result.data.status == BookingStatus.CONFIRMED
        assert result.message == "Booking confirmed"
        [event] = events
        assert event.event_type == "booking.status_changed"
        assert (event.old_status, event.new_status) == ("pending", "confirmed")

    def test_full_lifecycle(self, spa, service):
        booking = spa.booking()

        assert service.change_status(booking.id, BookingStatus.IN_PROGRESS).is_success
        assert service.change_status(booking.id, BookingStatus.COMPLETED).is_success

        result = service.change_status(booking.id, BookingStatus.CANCELLED)
        assert result.error_code == ErrorCode.INVALID_STATE
        assert result.error.details["current_status"] == "completed"
        assert result.error.details["allowed"] == []

    def test_accepts_status_value(self, spa, service):
        booking = spa.booking()

        assert service.change_status(booking.id, "no_show").data.status == BookingStatus.NO_SHOW

    def test_unknown_booking(self, spa, service):
        result = service.change_status("missing", BookingStatus.CONFIRMED)

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_rejected_change_publishes_nothing(self, spa, service, events):
        booking = spa.booking(status=BookingStatus.CANCELLED)

        assert service.change_status(booking.id, BookingStatus.CONFIRMED).error_code == ErrorCode.INVALID_STATE
        assert events == []


class TestCancellation:
    """Cancelling frees the room and staff member."""

    def test_cancel_records_reason(self, spa, service):
        booking = spa.booking()

        cancelled = service.cancel_booking(booking.id, reason="Feeling unwell").data

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancellation_reason == "Feeling unwell"
        assert cancelled.cancelled_at is not None

    def test_default_reason(self, spa, service):
        booking = spa.booking()

        assert service.cancel_booking(booking.id).data.cancellation_reason == DEFAULT_CANCELLATION_REASON

    def test_cancel_frees_slot_in_cached_availability(self, spa, service, cache):
        booking = spa.booking()
        assert _slot(cache).available_staff_count == 1

        service.cancel_booking(booking.id)

        slot = _slot(cache)
        assert slot.available_staff_count == 2
        assert slot.suggested_staff_id == "staff-a"

    def test_cancel_twice_is_invalid(self, spa, service):
        booking = spa.booking()
        service.cancel_booking(booking.id)

        result = service.cancel_booking(booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE


class TestReschedule:
    """Moving bookings."""

    def test_overlapping_move_keeps_room_and_staff(self, spa, service, events):
        booking = spa.booking()

        result = service.reschedule_booking(booking.id, TEST_DATE, time(10, 30))

        assert result.is_success
        moved = result.data
        assert (moved.start_time, moved.end_time) == (time(10, 30), time(11, 30))
        assert (moved.room_id, moved.staff_id) == ("room-1", "staff-a")
        assert moved.status == BookingStatus.CONFIRMED
        [event] = events
        assert event.event_type == "booking.rescheduled"
        assert event.data["old_start_time"] == "10:00"

    def test_move_to_busy_pair_reallocates(self, spa, service):
        booking = spa.booking()
        spa.booking(start=time(14, 0), end=time(15, 0), customer_id="customer-2")

        moved = service.reschedule_booking(booking.id, TEST_DATE, time(14, 0)).data

        assert (moved.room_id, moved.staff_id) == ("room-3", "staff-b")

    def test_move_to_another_date_invalidates_both_dates(self, spa, service, cache):
        next_day = TEST_DATE + timedelta(days=1)
        spa.schedule("staff-a", day=next_day)
        booking = spa.booking()
        assert cache.get_date_summary(TEST_DATE, 2)[0].booked_slots == 1

        result = service.reschedule_booking(booking.id, next_day, time(10, 0))

        assert result.is_success
        first, second = cache.get_date_summary(TEST_DATE, 2)
        assert first.booked_slots == 0
        assert second.booked_slots == 1

    def test_no_free_resources(self, spa, service):
        booking = spa.booking()
        spa.booking(staff_id="staff-a", room_id="room-1", start=time(15, 0), end=time(16, 0), customer_id="c2")
        spa.booking(staff_id="staff-b", room_id="room-3", start=time(15, 0), end=time(16, 0), customer_id="c3")

        result = service.reschedule_booking(booking.id, TEST_DATE, time(15, 0))

        assert result.error_code == ErrorCode.STAFF_UNAVAILABLE
        assert service.get_booking(booking.id).data.start_time == time(10, 0)

    @pytest.mark.parametrize("status", [BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_only_pending_or_confirmed(self, spa, service, status):
        booking = spa.booking(status=status)

        result = service.reschedule_booking(booking.id, TEST_DATE, time(12, 0))

        assert result.error_code == ErrorCode.INVALID_STATE
        assert result.error.details["current_status"] == status.value

    def test_validates_new_time(self, spa, service):
        booking = spa.booking()

        past = service.reschedule_booking(booking.id, FIXED_NOW.date() - timedelta(days=1), time(10, 0))
        late = service.reschedule_booking(booking.id, TEST_DATE, time(18, 30))
        partial = service.reschedule_booking(booking.id, TEST_DATE, time(12, 0, 15))

        assert past.error_code == ErrorCode.VALIDATION_ERROR
        assert late.error_code == ErrorCode.VALIDATION_ERROR
        assert partial.error.field == "time"


class TestReads:
    """Booking lists and staff schedules."""

    def test_list_hides_cancelled_by_default(self, spa, service):
        kept = spa.booking()
        spa.booking(start=time(12, 0), end=time(13, 0), status=BookingStatus.CANCELLED)

        result = service.list_bookings(customer_id="customer-1")

        assert [b.id for b in result.data] == [kept.id]
        assert result.metadata["count"] == 1

    def test_list_by_status(self, spa, service):
        spa.booking()
        cancelled = spa.booking(start=time(12, 0), end=time(13, 0), status=BookingStatus.CANCELLED)

        result = service.list_bookings(status=BookingStatus.CANCELLED)

        assert [b.id for b in result.data] == [cancelled.id]

    def test_list_filters(self, spa, service):
        spa.booking()
        other = spa.booking(staff_id="staff-b", room_id="room-3", customer_id="customer-2")

        assert [b.id for b in service.list_bookings(staff_id="staff-b").data] == [other.id]
        assert [b.id for b in service.list_bookings(customer_id="customer-2").data] == [other.id]
        assert service.list_bookings(booking_date=TEST_DATE + timedelta(days=1)).data == []

    def test_staff_schedule(self, spa, service):
        spa.booking(start=time(14, 0), end=time(15, 0))
        spa.booking()
        spa.booking(start=time(16, 0), end=time(17, 0), status=BookingStatus.CANCELLED)
        spa.booking(staff_id="staff-b", room_id="room-3")

        result = service.staff_schedule("staff-a", TEST_DATE, TEST_DATE)

        entries = result.data
        assert [e.start_time for e in entries] == [time(10, 0), time(14, 0)]
        assert entries[0].service_name == "Swedish Massage"
        assert entries[0].room_name == "Room room-1"
        assert entries[0].customer_reference == customer_reference("customer-1")
        assert "customer-1" not in entries[0].customer_reference
        assert result.metadata["staff_name"] == "Therapist staff-a"

    def test_staff_schedule_errors(self, spa, service):
        assert service.staff_schedule("nobody", TEST_DATE, TEST_DATE).error_code == ErrorCode.NOT_FOUND
        assert service.staff_schedule("staff-a", TEST_DATE, date(2024, 1, 1)).error_code == \
            ErrorCode.VALIDATION_ERROR
