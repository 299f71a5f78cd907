"""
Availability calculation.

Turns staff schedules and existing bookings into date-level summaries
and per-slot staff/room counts. Room and staff eligibility come from the
same rules the allocator applies, so a slot reported as available is
one the allocator can fill.
"""

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings, settings as default_settings
from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.staff.work_schedule_repository import WorkScheduleRepository
from app.repositories.treatment.service_repository import ServiceRepository
from app.services.booking.allocation_rules import ServiceRequirements
from app.services.booking.room_staff_allocator import load_day_snapshot
from app.utils.date_utils import add_minutes, daterange, format_display_time, format_time, time_grid

logger = get_logger(__name__)


@dataclass(frozen=True)
class DateAvailabilitySummary:
    """Bookable capacity of one date."""

    date: date
    total_slots: int
    booked_slots: int

    @property
    def available_slots(self) -> int:
        return max(0, self.total_slots - self.booked_slots)

    @property
    def has_availability(self) -> bool:
        return self.available_slots > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "total_slots": self.total_slots,
            "booked_slots": self.booked_slots,
            "available_slots": self.available_slots,
            "has_availability": self.has_availability,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DateAvailabilitySummary":
        return cls(
            date=date.fromisoformat(data["date"]),
            total_slots=data["total_slots"],
            booked_slots=data["booked_slots"],
        )


@dataclass(frozen=True)
class TimeSlot:
    """Staff and room availability at one candidate start time."""

    time: str
    display_time: str
    end_time: str
    available_staff_count: int
    available_room_count: int
    suggested_staff_id: Optional[str] = None
    suggested_room_id: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.available_staff_count > 0 and self.available_room_count > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["available"] = self.available
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeSlot":
        return cls(
            time=data["time"],
            display_time=data["display_time"],
            end_time=data["end_time"],
            available_staff_count=data["available_staff_count"],
            available_room_count=data["available_room_count"],
            suggested_staff_id=data.get("suggested_staff_id"),
            suggested_room_id=data.get("suggested_room_id"),
        )


class AvailabilityCalculator:
    """
    Computes date summaries and time slots from live storage.

    Each call opens a short-lived session from ``session_factory`` so one
    calculator can serve the whole application.
    """

    def __init__(self, session_factory: Callable[[], Session], settings: Optional[Settings] = None):
        self._session_factory = session_factory
        self.settings = settings or default_settings

    def date_summary(self, start_date: date, days: int) -> List[DateAvailabilitySummary]:
        """
        Summaries for ``days`` consecutive dates starting at ``start_date``.

        totalSlots sums, over every 'available' schedule entry of an active
        staff member, the whole slots that fit in the entry. bookedSlots
        counts the blocking bookings of the date.
        """
        if days < 1 or days > self.settings.MAX_SUMMARY_DAYS:
            raise ValidationError(
                f"days must be between 1 and {self.settings.MAX_SUMMARY_DAYS}",
                field_errors={"days": ["out of range"]},
            )

        end_date = start_date + timedelta(days=days - 1)
        granularity = self.settings.SLOT_GRANULARITY_MINUTES

        with self._session_factory() as db:
            entries = WorkScheduleRepository(db).get_available_in_range(start_date, end_date)
            booked = BookingRepository(db).count_blocking_by_date(start_date, end_date)

        totals: Dict[date, int] = {}
        for entry in entries:
            totals[entry.date] = totals.get(entry.date, 0) + entry.duration_minutes // granularity

        summaries = [
            DateAvailabilitySummary(date=day, total_slots=totals.get(day, 0), booked_slots=booked.get(day, 0))
            for day in daterange(start_date, end_date)
        ]
        logger.debug("Computed date summary", extra={"start_date": start_date.isoformat(), "days": days})
        return summaries

    def time_slots(
        self,
        slot_date: date,
        service_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Candidate slots across business hours for a date.

        Without a service the default duration is used and rooms are
        evaluated for a single guest with no special requirements.

        Raises:
            ValidationError: The service does not exist or is inactive
        """
        with self._session_factory() as db:
            if service_id is not None:
                service = ServiceRepository(db).find_by_id(service_id)
                if service is None or not service.is_active:
                    raise ValidationError(
                        "Service not found or inactive",
                        field_errors={"service": [f"unknown or inactive service {service_id}"]},
                    )
                requirements = ServiceRequirements.from_service(service)
            else:
                requirements = ServiceRequirements.default(self.settings.DEFAULT_SERVICE_DURATION_MINUTES)

            snapshot = load_day_snapshot(db, slot_date)

        slots = []
        for start in time_grid(
            self.settings.BUSINESS_HOURS_START,
            self.settings.BUSINESS_HOURS_END,
            self.settings.SLOT_GRANULARITY_MINUTES,
            requirements.duration_minutes,
        ):
            end = add_minutes(start, requirements.duration_minutes)
            _, rooms = snapshot.free_rooms(requirements, start, end, room_id=room_id)
            staff = snapshot.free_staff(
                requirements,
                start,
                end,
                staff_id=staff_id,
                enforce_specialization=self.settings.ENFORCE_STAFF_SPECIALIZATION,
            )
            slots.append(
                TimeSlot(
                    time=format_time(start),
                    display_time=format_display_time(start),
                    end_time=format_time(end),
                    available_staff_count=len(staff),
                    available_room_count=len(rooms),
                    suggested_staff_id=staff[0].id if staff else None,
                    suggested_room_id=rooms[0].id if rooms else None,
                )
            )
        return slots
