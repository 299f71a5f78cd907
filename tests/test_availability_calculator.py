"""Tests for date summaries and time slots."""

from datetime import time, timedelta

import pytest

from app.core.exceptions import ValidationError
from app.models.base.enums import BookingStatus, ScheduleStatus
from tests.conftest import TEST_DATE


def _slot(slots, at):
    return next(slot for slot in slots if slot.time == at)


class TestDateSummary:
    """Date summaries."""

    def test_single_staff_full_day(self, make, calculator):
        """One staff member scheduled 09:00-18:00 yields 18 half-hour slots."""
        make.staff("staff-a")
        make.schedule("staff-a", start=time(9, 0), end=time(18, 0))

        [summary] = calculator.date_summary(TEST_DATE, 1)

        assert summary.date == TEST_DATE
        assert summary.total_slots == 18
        assert summary.booked_slots == 0
        assert summary.available_slots == 18
        assert summary.has_availability is True

    def test_unscheduled_dates_have_no_slots(self, make, calculator):
        make.staff("staff-a")
        make.schedule("staff-a")

        summaries = calculator.date_summary(TEST_DATE - timedelta(days=1), 3)

        assert [s.total_slots for s in summaries] == [0, 18, 0]
        assert [s.has_availability for s in summaries] == [False, True, False]

    def test_partial_slots_are_floored_per_entry(self, make, calculator):
        make.staff("staff-a")
        make.staff("staff-b")
        make.schedule("staff-a", start=time(9, 0), end=time(10, 45))
        make.schedule("staff-b", start=time(13, 0), end=time(13, 50))

        [summary] = calculator.date_summary(TEST_DATE, 1)

        assert summary.total_slots == 3 + 1

    def test_only_available_entries_of_active_staff_count(self, make, calculator):
        make.staff("staff-a")
        make.staff("staff-b", is_active=False)
        make.schedule("staff-a", start=time(9, 0), end=time(12, 0))
        make.schedule("staff-a", start=time(12, 0), end=time(13, 0), status=ScheduleStatus.BREAK)
        make.schedule("staff-b", start=time(9, 0), end=time(18, 0))

        [summary] = calculator.date_summary(TEST_DATE, 1)

        assert summary.total_slots == 6

    def test_booked_slots_ignore_cancelled_and_no_show(self, spa, calculator):
        spa.booking(start=time(10, 0), end=time(11, 0))
        spa.booking(start=time(12, 0), end=time(13, 0), status=BookingStatus.PENDING)
        spa.booking(start=time(14, 0), end=time(15, 0), status=BookingStatus.CANCELLED)
        spa.booking(start=time(15, 0), end=time(16, 0), status=BookingStatus.NO_SHOW)

        [summary] = calculator.date_summary(TEST_DATE, 1)

        assert summary.total_slots == 36
        assert summary.booked_slots == 2
        assert summary.available_slots == 34

    def test_available_slots_never_negative(self, make, calculator):
        make.service()
        make.room("room-1")
        make.staff("staff-a")
        make.schedule("staff-a", start=time(9, 0), end=time(10, 0))
        for hour in (9, 11, 13):
            make.booking(start=time(hour, 0), end=time(hour + 1, 0))

        [summary] = calculator.date_summary(TEST_DATE, 1)

        assert summary.total_slots == 2
        assert summary.booked_slots == 3
        assert summary.available_slots == 0
        assert summary.has_availability is False

    @pytest.mark.parametrize("days", [0, -1, 91])
    def test_days_out_of_range(self, calculator, days):
        with pytest.raises(ValidationError):
            calculator.date_summary(TEST_DATE, days)


class TestTimeSlots:
    """Slot listings for a date."""

    def test_grid_covers_business_hours(self, spa, calculator):
        slots = calculator.time_slots(TEST_DATE)

        assert slots[0].time == "09:00"
        assert slots[0].display_time == "9:00 AM"
        assert slots[0].end_time == "10:00"
        assert slots[-1].time == "18:00"
        assert len(slots) == 19

    def test_counts_and_suggestions_without_bookings(self, spa, calculator):
        slot = _slot(calculator.time_slots(TEST_DATE), "10:00")

        assert slot.available is True
        assert slot.available_staff_count == 2
        assert slot.available_room_count == 3
        assert slot.suggested_staff_id == "staff-a"
        assert slot.suggested_room_id == "room-1"

    def test_staff_must_finish_inside_schedule(self, spa, calculator):
        slots = calculator.time_slots(TEST_DATE)

        assert _slot(slots, "17:00").available_staff_count == 2
        assert _slot(slots, "17:30").available_staff_count == 0
        assert _slot(slots, "17:30").available is False

    def test_booking_removes_its_room_and_staff(self, spa, calculator):
        spa.booking(staff_id="staff-a", room_id="room-1", start=time(10, 0), end=time(11, 0))

        slots = calculator.time_slots(TEST_DATE)
        at_ten = _slot(slots, "10:00")
        at_half_past = _slot(slots, "10:30")
        at_eleven = _slot(slots, "11:00")

        assert at_ten.available_staff_count == 1
        assert at_ten.available_room_count == 2
        assert at_ten.suggested_staff_id == "staff-b"
        assert at_ten.suggested_room_id == "room-3"
        assert at_half_past.available_staff_count == 1
        assert at_eleven.available_staff_count == 2
        assert at_eleven.available_room_count == 3

    def test_service_rules_limit_rooms(self, spa, calculator):
        couples = _slot(calculator.time_slots(TEST_DATE, service_id="svc-couples"), "10:00")
        scrub = _slot(calculator.time_slots(TEST_DATE, service_id="svc-scrub"), "10:00")

        assert couples.available_room_count == 1
        assert couples.suggested_room_id == "room-2"
        assert scrub.available_room_count == 1
        assert scrub.suggested_room_id == "room-3"

    def test_break_blocks_staff(self, spa, calculator):
        spa.schedule("staff-a", start=time(12, 0), end=time(13, 0), status=ScheduleStatus.BREAK)

        slots = calculator.time_slots(TEST_DATE)

        assert _slot(slots, "12:00").available_staff_count == 1
        assert _slot(slots, "11:30").available_staff_count == 1
        assert _slot(slots, "13:00").available_staff_count == 2

    def test_filters(self, spa, calculator):
        slot = _slot(calculator.time_slots(TEST_DATE, staff_id="staff-b", room_id="room-2"), "10:00")

        assert slot.available_staff_count == 1
        assert slot.available_room_count == 1
        assert slot.suggested_staff_id == "staff-b"
        assert slot.suggested_room_id == "room-2"

    def test_service_duration_sets_grid(self, spa, calculator):
        spa.service(id="svc-long", name="Signature Ritual", duration_minutes=120)

        slots = calculator.time_slots(TEST_DATE, service_id="svc-long")

        assert slots[-1].time == "17:00"
        assert slots[0].end_time == "11:00"

    def test_unknown_or_inactive_service(self, spa, calculator):
        spa.service(id="svc-retired", name="Retired", is_active=False)

        with pytest.raises(ValidationError):
            calculator.time_slots(TEST_DATE, service_id="svc-missing")
        with pytest.raises(ValidationError):
            calculator.time_slots(TEST_DATE, service_id="svc-retired")

    def test_repeated_queries_are_identical(self, spa, calculator):
        spa.booking(start=time(14, 0), end=time(15, 0))

        assert calculator.time_slots(TEST_DATE) == calculator.time_slots(TEST_DATE)
        assert calculator.date_summary(TEST_DATE, 7) == calculator.date_summary(TEST_DATE, 7)
