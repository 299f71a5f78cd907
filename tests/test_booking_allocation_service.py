"""Tests for booking creation."""

from datetime import date, time, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from app.core.exceptions import BookingConflictError
from app.models.base.enums import BookingStatus
from app.models.treatment.service import Service
from app.repositories.booking.booking_repository import BookingRepository
from app.services.base import ErrorCode
from app.services.booking.booking_allocation_service import BookingAllocationService
from tests.conftest import FIXED_NOW, TEST_DATE, Factory, fixed_clock


@pytest.fixture
def events(event_bus):
    received = []
    event_bus.subscribe("*", received.append)
    return received


@pytest.fixture
def service(db, cache, event_bus, settings):
    return BookingAllocationService(db, cache=cache, event_bus=event_bus, settings=settings, clock=fixed_clock)


class TestCreateBooking:
    """Successful creation."""

    def test_creates_confirmed_booking(self, spa, service):
        result = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1",
                                        special_requests="Extra towels")

        assert result.is_success
        booking = result.data
        assert booking.id
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.start_time == time(10, 0)
        assert booking.end_time == time(11, 0)
        assert booking.room_id == "room-1"
        assert booking.staff_id == "staff-a"
        assert booking.special_requests == "Extra towels"

    def test_price_is_snapshotted(self, spa, service, db):
        booking = service.create_booking("svc-couples", TEST_DATE, time(10, 0), "customer-1", party_size=2).data

        db.query(Service).filter_by(id="svc-couples").update({"price": Decimal("999.00")})
        db.commit()

        reloaded = BookingRepository(db).reload(booking.id)
        assert reloaded.total_price == Decimal("150.00")
        assert reloaded.party_size == 2
        assert reloaded.room_id == "room-2"

    def test_initial_status_follows_settings(self, spa, db, cache, event_bus, settings):
        pending_settings = settings.model_copy(update={"BOOKING_INITIAL_STATUS": "pending"})
        service = BookingAllocationService(db, cache=cache, event_bus=event_bus, settings=pending_settings,
                                           clock=fixed_clock)

        booking = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1").data

        assert booking.status == BookingStatus.PENDING

    def test_invalidates_cache_before_returning(self, spa, service, cache):
        slot = next(s for s in cache.get_time_slots(TEST_DATE) if s.time == "10:00")
        assert slot.available_staff_count == 2

        service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1")

        slot = next(s for s in cache.get_time_slots(TEST_DATE) if s.time == "10:00")
        assert slot.available_staff_count == 1
        assert cache.get_date_summary(TEST_DATE, 1)[0].booked_slots == 1

    def test_publishes_created_event(self, spa, service, events):
        booking = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1").data

        [event] = events
        assert event.event_type == "booking.created"
        assert event.booking_id == booking.id
        assert event.data["booking_date"] == TEST_DATE.isoformat()

    def test_sequential_bookings_never_overlap(self, spa, service):
        created = []
        for _ in range(4):
            result = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1")
            if result:
                created.append(result.data)

        # Two staff members limit the hour to two bookings
        assert len(created) == 2
        assert len({b.room_id for b in created}) == 2
        assert len({b.staff_id for b in created}) == 2


class TestCreateBookingValidation:
    """Requests rejected before allocation."""

    @pytest.mark.parametrize(
        "service_id, booking_date, start, field",
        [
            ("svc-missing", TEST_DATE, time(10, 0), "service_id"),
            ("svc-massage", FIXED_NOW.date() - timedelta(days=1), time(10, 0), "date"),
            ("svc-massage", FIXED_NOW.date(), time(9, 0), "time"),
            ("svc-massage", FIXED_NOW.date() + timedelta(days=91), time(10, 0), "date"),
            ("svc-massage", TEST_DATE, time(8, 30), "time"),
            ("svc-massage", TEST_DATE, time(18, 30), "time"),
        ],
    )
    def test_rejected(self, spa, service, service_id, booking_date, start, field):
        result = service.create_booking(service_id, booking_date, start, "customer-1")

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == field

    def test_start_time_with_seconds(self, spa, service, db):
        result = service.create_booking("svc-massage", TEST_DATE, time(10, 0, 30), "customer-1")

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == "time"
        assert result.error.details["time"] == "10:00:30"
        assert BookingRepository(db).query(TEST_DATE) == []

    def test_inactive_service(self, spa, service):
        spa.service(id="svc-retired", name="Retired", is_active=False)

        result = service.create_booking("svc-retired", TEST_DATE, time(10, 0), "customer-1")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_missing_customer_and_bad_party(self, spa, service):
        assert service.create_booking("svc-massage", TEST_DATE, time(10, 0), " ").error_code == \
            ErrorCode.VALIDATION_ERROR
        assert service.create_booking("svc-massage", TEST_DATE, time(10, 0), "c", party_size=0).error_code == \
            ErrorCode.VALIDATION_ERROR

    def test_lead_time_boundary(self, spa, service):
        today = FIXED_NOW.date()
        spa.schedule("staff-a", day=today)

        assert service.create_booking("svc-massage", today, time(9, 30), "c").error_code == \
            ErrorCode.VALIDATION_ERROR
        assert service.create_booking("svc-massage", today, time(10, 0), "c").is_success

    def test_horizon_boundary(self, spa, service):
        last_day = FIXED_NOW.date() + timedelta(days=90)
        spa.schedule("staff-a", day=last_day)

        assert service.create_booking("svc-massage", last_day, time(10, 0), "c").is_success


class TestCreateBookingFailures:
    """Allocation failures and lost races."""

    def test_room_unavailable_is_returned_unchanged(self, spa, service):
        spa.booking(service_id="svc-scrub", staff_id="staff-b", room_id="room-3")

        result = service.create_booking("svc-scrub", TEST_DATE, time(10, 0), "customer-1")

        assert result.error_code == ErrorCode.ROOM_UNAVAILABLE
        assert result.error.rule == "specialized_drainage"

    def test_lost_race_is_retried_once_with_fresh_allocation(self, spa, service, db):
        real_insert = BookingRepository.atomic_insert
        calls = []

        def first_insert_loses(repo, booking):
            calls.append((booking.room_id, booking.staff_id))
            if len(calls) == 1:
                # A concurrent request takes the same pair just before this insert
                Factory(db).booking(staff_id=booking.staff_id, room_id=booking.room_id,
                                    start=booking.start_time, end=booking.end_time)
            return real_insert(repo, booking)

        with patch.object(BookingRepository, "atomic_insert", first_insert_loses):
            result = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1")

        assert result.is_success
        assert calls == [("room-1", "staff-a"), ("room-3", "staff-b")]

    def test_second_loss_is_a_conflict(self, spa, service):
        def always_loses(repo, booking):
            repo.db.rollback()
            raise BookingConflictError(details={"room_id": booking.room_id})

        with patch.object(BookingRepository, "atomic_insert", always_loses):
            result = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1")

        assert result.error_code == ErrorCode.BOOKING_CONFLICT

    def test_no_resources_left_after_lost_race_is_a_conflict(self, make, db, cache, event_bus, settings):
        make.service()
        make.room("room-1")
        make.staff("staff-a")
        make.schedule("staff-a")
        service = BookingAllocationService(db, cache=cache, event_bus=event_bus, settings=settings,
                                           clock=fixed_clock)
        real_insert = BookingRepository.atomic_insert

        def taken_first(repo, booking):
            make.booking(start=booking.start_time, end=booking.end_time, customer_id="someone-else")
            return real_insert(repo, booking)

        with patch.object(BookingRepository, "atomic_insert", taken_first):
            result = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1")

        assert result.error_code == ErrorCode.BOOKING_CONFLICT


def test_booking_date_is_a_date(spa, service):
    booking = service.create_booking("svc-massage", TEST_DATE, time(10, 0), "customer-1").data
    assert isinstance(booking.booking_date, date)
