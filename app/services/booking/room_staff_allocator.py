"""
Room and staff allocation for booking requests.

Selects one compliant (room, staff) pair for a service and interval by
evaluating the ordered room rules and the staff eligibility predicate
against live storage. There is exactly one allocation algorithm; every
write path goes through it.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings, settings as default_settings
from app.core.logging import get_logger
from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.room.room_repository import RoomRepository
from app.repositories.staff.staff_repository import StaffRepository
from app.repositories.staff.work_schedule_repository import WorkScheduleRepository
from app.repositories.treatment.service_repository import ServiceRepository
from app.services.availability.conflict_detector import find_conflicts
from app.services.base.service_result import ErrorCode, ServiceResult
from app.services.booking.allocation_rules import (
    DaySnapshot,
    ServiceRequirements,
    rank_rooms,
    room_is_compatible,
    staff_unavailability_reason,
)
from app.utils.date_utils import format_time
from app.utils.formatters import customer_reference

logger = get_logger(__name__)


@dataclass(frozen=True)
class Allocation:
    """The (room, staff) pair chosen for a request."""

    room_id: str
    staff_id: str
    rule: str
    service_id: str
    booking_date: date
    start_time: time
    end_time: time


@dataclass(frozen=True)
class BookingConflictDetail:
    """An existing booking that blocks a requested room or staff member."""

    booking_id: str
    conflict_type: str
    resource_name: str
    existing_start_time: time
    existing_end_time: time
    customer_reference: str


@dataclass
class ResourceCheck:
    """Outcome of validating an explicit room and staff pair."""

    room_available: bool
    staff_available: bool
    room_compatible: Optional[bool] = None
    conflicts: List[BookingConflictDetail] = field(default_factory=list)
    reasons: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return (
            self.room_available
            and self.staff_available
            and self.room_compatible is not False
            and not self.conflicts
        )


def load_day_snapshot(db: Session, day: date) -> DaySnapshot:
    """Read rooms, active staff, schedules and blocking bookings of a date."""
    schedules: Dict[str, list] = {}
    for entry in WorkScheduleRepository(db).get_for_date(day):
        schedules.setdefault(entry.staff_id, []).append(entry)

    return DaySnapshot(
        day=day,
        rooms=RoomRepository(db).list_active(),
        staff=StaffRepository(db).list_active(),
        schedules=schedules,
        bookings=BookingRepository(db).query(day),
    )


class RoomStaffAllocator:
    """
    Pick a compliant room and staff member for a service and interval.

    Rooms are resolved first: the first applicable room rule decides the
    candidate set and its preference order. Staff are then the eligible
    members with no conflicting booking, lowest id first.
    """

    def __init__(self, db_session: Session, settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = settings or default_settings
        self.services = ServiceRepository(db_session)
        self.rooms = RoomRepository(db_session)
        self.staff = StaffRepository(db_session)
        self.bookings = BookingRepository(db_session)

    def allocate(
        self,
        service_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        party_size: int = 1,
        *,
        staff_id: Optional[str] = None,
        room_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
        preferred_room_id: Optional[str] = None,
        preferred_staff_id: Optional[str] = None,
    ) -> ServiceResult[Allocation]:
        """
        Allocate a (room, staff) pair.

        Args:
            service_id: Requested service
            booking_date: Date of the interval
            start_time: Interval start
            end_time: Interval end (exclusive)
            party_size: Number of guests sharing the room
            staff_id: Restrict to this staff member
            room_id: Restrict to this room
            exclude_booking_id: Ignore this booking's own prior state
            preferred_room_id: Take this room when it is free and compliant
            preferred_staff_id: Take this staff member when eligible and free

        Returns:
            ServiceResult with the Allocation, or a ROOM_UNAVAILABLE /
            STAFF_UNAVAILABLE failure naming the rule and the request
        """
        if not start_time < end_time:
            return ServiceResult.validation_failure("Start time must be before end time", field="time")
        if party_size < 1:
            return ServiceResult.validation_failure("Party size must be at least 1", field="party_size")

        service = self.services.find_by_id(service_id)
        if service is None or not service.is_active:
            return ServiceResult.validation_failure(
                "Service not found or inactive", field="service_id", details={"service_id": service_id}
            )

        requirements = ServiceRequirements.from_service(service)
        snapshot = load_day_snapshot(self.db, booking_date)
        request = {
            "service_id": service_id,
            "date": booking_date.isoformat(),
            "start_time": format_time(start_time),
            "end_time": format_time(end_time),
            "party_size": party_size,
            "requested_room_id": room_id,
            "requested_staff_id": staff_id,
        }

        rule, free_rooms = snapshot.free_rooms(
            requirements, start_time, end_time, party_size,
            room_id=room_id, exclude_booking_id=exclude_booking_id,
        )
        if not free_rooms:
            return self._no_room(rule.name, requirements, snapshot, party_size, request)

        free_staff = snapshot.free_staff(
            requirements, start_time, end_time,
            staff_id=staff_id,
            exclude_booking_id=exclude_booking_id,
            enforce_specialization=self.settings.ENFORCE_STAFF_SPECIALIZATION,
        )
        if not free_staff:
            logger.info("No staff member available", extra=request)
            return ServiceResult.unavailable(
                ErrorCode.STAFF_UNAVAILABLE,
                "No staff member is available for the requested time",
                rule="staff_eligibility",
                details=request,
            )

        room = _prefer(free_rooms, preferred_room_id)
        member = _prefer(free_staff, preferred_staff_id)
        allocation = Allocation(
            room_id=room.id,
            staff_id=member.id,
            rule=rule.name,
            service_id=service_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
        )
        logger.info(
            "Allocated room and staff",
            extra={"rule": rule.name, "room_id": room.id, "staff_id": member.id, **request},
        )
        return ServiceResult.success(allocation)

    def _no_room(
        self,
        rule_name: str,
        requirements: ServiceRequirements,
        snapshot: DaySnapshot,
        party_size: int,
        request: dict,
    ) -> ServiceResult:
        message = f"No room satisfying rule '{rule_name}' is free for the requested time"
        details = dict(request)
        if requirements.allowed_room_ids:
            details["allowed_room_ids"] = sorted(requirements.allowed_room_ids)
            _, compatible = rank_rooms(requirements, snapshot.rooms, party_size)
            if not compatible:
                # The restriction, not bookings, left nothing to choose from
                details["restriction"] = "allowed_room_ids"
                message = f"None of the service's allowed rooms satisfies rule '{rule_name}'"

        logger.info("No room available", extra={"rule": rule_name, **details})
        return ServiceResult.unavailable(ErrorCode.ROOM_UNAVAILABLE, message, rule=rule_name, details=details)

    def check_resources(
        self,
        room_id: str,
        staff_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_booking_id: Optional[str] = None,
        service_id: Optional[str] = None,
    ) -> ServiceResult[ResourceCheck]:
        """
        Validate an explicit room and staff pair for an interval.

        The room must be active and free; the staff member must be active,
        scheduled for the whole interval and free. With a service, the
        room is also checked against the room rules.
        """
        if not start_time < end_time:
            return ServiceResult.validation_failure("Start time must be before end time", field="time")

        room = self.rooms.find_by_id(room_id)
        if room is None:
            return ServiceResult.not_found("Room", room_id)
        member = self.staff.find_by_id(staff_id)
        if member is None:
            return ServiceResult.not_found("Staff member", staff_id)

        requirements = None
        if service_id is not None:
            service = self.services.find_by_id(service_id)
            if service is None:
                return ServiceResult.not_found("Service", service_id)
            requirements = ServiceRequirements.from_service(service)

        snapshot = load_day_snapshot(self.db, booking_date)
        check = ResourceCheck(room_available=True, staff_available=True)

        if not room.is_active:
            check.room_available = False
            check.reasons["room"] = "inactive"
        if requirements is not None:
            check.room_compatible = room_is_compatible(requirements, room)
            if not check.room_compatible:
                check.reasons.setdefault("room", "incompatible")

        reason = staff_unavailability_reason(
            member,
            snapshot.schedules.get(staff_id, ()),
            start_time,
            end_time,
            requirements,
            self.settings.ENFORCE_STAFF_SPECIALIZATION,
        )
        if reason is not None:
            check.staff_available = False
            check.reasons["staff"] = reason

        for booking in find_conflicts(
            snapshot.bookings, start_time, end_time,
            room_id=room_id, staff_id=staff_id, exclude_booking_id=exclude_booking_id,
        ):
            same_room = booking.room_id == room_id
            same_staff = booking.staff_id == staff_id
            if same_room:
                check.room_available = False
                check.reasons.setdefault("room", "booked")
            if same_staff:
                check.staff_available = False
                check.reasons.setdefault("staff", "booked")
            check.conflicts.append(
                BookingConflictDetail(
                    booking_id=booking.id,
                    conflict_type="room_and_staff" if same_room and same_staff else ("room" if same_room else "staff"),
                    resource_name=room.name if same_room else member.name,
                    existing_start_time=booking.start_time,
                    existing_end_time=booking.end_time,
                    customer_reference=customer_reference(booking.customer_id),
                )
            )

        return ServiceResult.success(check)


def _prefer(candidates: List, preferred_id: Optional[str]):
    if preferred_id is not None:
        for candidate in candidates:
            if candidate.id == preferred_id:
                return candidate
    return candidates[0]
