"""
Room and staff eligibility rules.

Room selection is an ordered list of rules; the first rule that applies
to a request decides which rooms are candidates and in which order they
are preferred. Staff eligibility is a single predicate. The availability
calculator and the allocator both evaluate these rules, so slot counts
and allocations always agree.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from app.models.base.enums import ScheduleStatus
from app.models.room.room import Room
from app.models.staff.staff_member import StaffMember
from app.models.staff.work_schedule import WorkSchedule
from app.models.treatment.service import Service
from app.services.availability.conflict_detector import conflicts, find_conflicts

# Schedule statuses that take a staff member off the floor
BLOCKING_SCHEDULE_STATUSES = frozenset({ScheduleStatus.BREAK, ScheduleStatus.UNAVAILABLE, ScheduleStatus.BOOKED})


@dataclass(frozen=True)
class ServiceRequirements:
    """What a request needs from a room and a staff member."""

    duration_minutes: int
    category: Optional[str] = None
    requires_specialized_drainage: bool = False
    min_room_capacity: int = 1
    allowed_room_ids: FrozenSet[str] = frozenset()
    service_id: Optional[str] = None

    @classmethod
    def from_service(cls, service: Service) -> "ServiceRequirements":
        return cls(
            duration_minutes=service.duration_minutes,
            category=service.category,
            requires_specialized_drainage=service.requires_specialized_drainage,
            min_room_capacity=service.min_room_capacity,
            allowed_room_ids=frozenset(service.allowed_room_ids or ()),
            service_id=service.id,
        )

    @classmethod
    def default(cls, duration_minutes: int) -> "ServiceRequirements":
        """Requirements for a slot query without a service."""
        return cls(duration_minutes=duration_minutes)

    def required_capacity(self, party_size: int) -> int:
        return max(self.min_room_capacity, party_size)


# -------------------------------------------------------------------------
# Room rules
# -------------------------------------------------------------------------

class RoomRule(ABC):
    """One room-selection rule."""

    name: str = "room_rule"

    @abstractmethod
    def applies(self, requirements: ServiceRequirements, party_size: int) -> bool:
        ...

    @abstractmethod
    def accepts(self, room: Room, requirements: ServiceRequirements, party_size: int) -> bool:
        ...

    def preference(self, room: Room) -> Tuple:
        return (room.bed_capacity, room.id)


class SpecializedDrainageRule(RoomRule):
    """Drainage treatments only go to drainage-equipped rooms."""

    name = "specialized_drainage"

    def applies(self, requirements: ServiceRequirements, party_size: int) -> bool:
        return requirements.requires_specialized_drainage

    def accepts(self, room: Room, requirements: ServiceRequirements, party_size: int) -> bool:
        return room.has_specialized_drainage and room.bed_capacity >= requirements.required_capacity(party_size)


class MultiBedRule(RoomRule):
    """Couples and group treatments need a multi-bed room; drainage rooms first."""

    name = "multi_bed"

    def applies(self, requirements: ServiceRequirements, party_size: int) -> bool:
        return party_size >= 2 or requirements.min_room_capacity >= 2

    def accepts(self, room: Room, requirements: ServiceRequirements, party_size: int) -> bool:
        return room.bed_capacity >= max(2, requirements.required_capacity(party_size))

    def preference(self, room: Room) -> Tuple:
        return (not room.has_specialized_drainage, room.bed_capacity, room.id)


class SingleGuestRule(RoomRule):
    """Single guests take the smallest room so multi-bed rooms stay free for couples."""

    name = "single_guest"

    def applies(self, requirements: ServiceRequirements, party_size: int) -> bool:
        return True

    def accepts(self, room: Room, requirements: ServiceRequirements, party_size: int) -> bool:
        return room.bed_capacity >= requirements.required_capacity(party_size)


ROOM_RULES: Tuple[RoomRule, ...] = (
    SpecializedDrainageRule(),
    MultiBedRule(),
    SingleGuestRule(),
)


def select_room_rule(requirements: ServiceRequirements, party_size: int = 1) -> RoomRule:
    for rule in ROOM_RULES:
        if rule.applies(requirements, party_size):
            return rule
    raise LookupError("No room rule applies")  # SingleGuestRule always applies


def rank_rooms(
    requirements: ServiceRequirements,
    rooms: Iterable[Room],
    party_size: int = 1,
) -> Tuple[RoomRule, List[Room]]:
    """
    Compatible active rooms in preference order.

    An explicit allowed-room set is intersected before ordering.
    """
    rule = select_room_rule(requirements, party_size)
    candidates = [room for room in rooms if room.is_active]
    if requirements.allowed_room_ids:
        candidates = [room for room in candidates if room.id in requirements.allowed_room_ids]
    candidates = [room for room in candidates if rule.accepts(room, requirements, party_size)]
    return rule, sorted(candidates, key=rule.preference)


def room_is_compatible(requirements: ServiceRequirements, room: Room, party_size: int = 1) -> bool:
    _, ranked = rank_rooms(requirements, [room], party_size)
    return bool(ranked)


# -------------------------------------------------------------------------
# Staff eligibility
# -------------------------------------------------------------------------

def staff_unavailability_reason(
    staff: StaffMember,
    entries: Sequence[WorkSchedule],
    start: time,
    end: time,
    requirements: Optional[ServiceRequirements] = None,
    enforce_specialization: bool = True,
) -> Optional[str]:
    """
    Why a staff member cannot take ``[start, end)``, or None if they can.

    Booking conflicts are checked separately against the booking store.
    """
    if not staff.is_active:
        return "inactive"
    if (
        enforce_specialization
        and requirements is not None
        and requirements.category
        and not staff.can_perform(requirements.category)
    ):
        return "specialization"
    if not any(entry.status == ScheduleStatus.AVAILABLE and entry.covers(start, end) for entry in entries):
        return "not_scheduled"
    if any(
        entry.status in BLOCKING_SCHEDULE_STATUSES and conflicts(entry.start_time, entry.end_time, start, end)
        for entry in entries
    ):
        return "schedule_blocked"
    return None


# -------------------------------------------------------------------------
# Day snapshot
# -------------------------------------------------------------------------

@dataclass
class DaySnapshot:
    """Rooms, staff, schedules and blocking bookings of one date."""

    day: date
    rooms: List[Room]
    staff: List[StaffMember]
    schedules: Dict[str, List[WorkSchedule]] = field(default_factory=dict)
    bookings: List = field(default_factory=list)

    def free_rooms(
        self,
        requirements: ServiceRequirements,
        start: time,
        end: time,
        party_size: int = 1,
        room_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> Tuple[RoomRule, List[Room]]:
        """Compatible rooms with no conflicting booking, in preference order."""
        rule, ranked = rank_rooms(requirements, self.rooms, party_size)
        if room_id is not None:
            ranked = [room for room in ranked if room.id == room_id]
        free = [
            room for room in ranked
            if not find_conflicts(self.bookings, start, end, room_id=room.id, exclude_booking_id=exclude_booking_id)
        ]
        return rule, free

    def free_staff(
        self,
        requirements: Optional[ServiceRequirements],
        start: time,
        end: time,
        staff_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
        enforce_specialization: bool = True,
    ) -> List[StaffMember]:
        """Eligible staff with no conflicting booking, lowest id first."""
        free = []
        for member in sorted(self.staff, key=lambda s: s.id):
            if staff_id is not None and member.id != staff_id:
                continue
            reason = staff_unavailability_reason(
                member, self.schedules.get(member.id, ()), start, end, requirements, enforce_specialization
            )
            if reason is not None:
                continue
            if find_conflicts(self.bookings, start, end, staff_id=member.id, exclude_booking_id=exclude_booking_id):
                continue
            free.append(member)
        return free


__all__ = [
    "BLOCKING_SCHEDULE_STATUSES",
    "DaySnapshot",
    "MultiBedRule",
    "ROOM_RULES",
    "RoomRule",
    "ServiceRequirements",
    "SingleGuestRule",
    "SpecializedDrainageRule",
    "rank_rooms",
    "room_is_compatible",
    "select_room_rule",
    "staff_unavailability_reason",
]
