"""Shared fixtures: in-memory database, model factories, fixed clock and API client."""

from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.config.settings import Settings
from app.core.events import EventBus
from app.db.init_db import init_db
from app.db.session import build_session_factory
from app.models import Booking, BookingStatus, Room, ScheduleStatus, Service, StaffMember, WorkSchedule
from app.models.base.base_model import generate_id
from app.services.availability.availability_cache import AvailabilityCache
from app.services.availability.availability_calculator import AvailabilityCalculator
from app.services.cache import MemoryCacheBackend

# Scenario date and the fixed "now" used for lead-time and horizon rules
TEST_DATE = date(2024, 1, 15)
FIXED_NOW = datetime(2024, 1, 10, 8, 0)


def fixed_clock():
    return FIXED_NOW


class FakeMonotonic:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Factory:
    """Creates and commits model rows with readable, ordered ids."""

    def __init__(self, session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def service(self, id="svc-massage", name="Swedish Massage", category="massage", duration_minutes=60,
                price=Decimal("80.00"), requires_specialized_drainage=False, min_room_capacity=1,
                allowed_room_ids=None, is_active=True):
        return self._save(Service(
            id=id,
            name=name,
            category=category,
            duration_minutes=duration_minutes,
            price=price,
            requires_specialized_drainage=requires_specialized_drainage,
            min_room_capacity=min_room_capacity,
            allowed_room_ids=list(allowed_room_ids or []),
            is_active=is_active,
        ))

    def room(self, id="room-1", name=None, bed_capacity=1, has_specialized_drainage=False, is_active=True):
        return self._save(Room(
            id=id,
            name=name or f"Room {id}",
            bed_capacity=bed_capacity,
            has_specialized_drainage=has_specialized_drainage,
            is_active=is_active,
        ))

    def staff(self, id="staff-a", name=None, specializations=None, is_active=True):
        return self._save(StaffMember(
            id=id,
            name=name or f"Therapist {id}",
            specializations=list(specializations or []),
            is_active=is_active,
        ))

    def schedule(self, staff_id="staff-a", day=TEST_DATE, start=time(9, 0), end=time(18, 0),
                 status=ScheduleStatus.AVAILABLE):
        return self._save(WorkSchedule(
            id=generate_id(),
            staff_id=staff_id,
            date=day,
            start_time=start,
            end_time=end,
            status=status,
        ))

    def booking(self, service_id="svc-massage", staff_id="staff-a", room_id="room-1", day=TEST_DATE,
                start=time(10, 0), end=time(11, 0), status=BookingStatus.CONFIRMED,
                customer_id="customer-1", party_size=1, id=None):
        return self._save(Booking(
            id=id or generate_id(),
            customer_id=customer_id,
            service_id=service_id,
            staff_id=staff_id,
            room_id=room_id,
            booking_date=day,
            start_time=start,
            end_time=end,
            party_size=party_size,
            status=status,
            total_price=Decimal("80.00"),
        ))


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        ENVIRONMENT="testing",
        CACHE_BACKEND="memory",
        TIMEZONE="UTC",
        BOOKING_INITIAL_STATUS="confirmed",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def calculator(session_factory, settings):
    return AvailabilityCalculator(session_factory, settings)


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def cache(calculator, settings, monotonic):
    return AvailabilityCache(calculator, MemoryCacheBackend(clock=monotonic), settings, clock=monotonic)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def spa(make):
    """
    A small spa on TEST_DATE.

    Rooms: a single room, a couples room and a drainage room.
    Staff: two therapists scheduled 09:00-18:00.
    """
    make.service()
    make.service(id="svc-couples", name="Couples Massage", min_room_capacity=2, price=Decimal("150.00"))
    make.service(id="svc-scrub", name="Body Scrub", category="body", requires_specialized_drainage=True,
                 price=Decimal("95.00"))
    make.room("room-1", bed_capacity=1)
    make.room("room-2", bed_capacity=2)
    make.room("room-3", bed_capacity=1, has_specialized_drainage=True)
    make.staff("staff-a")
    make.staff("staff-b")
    make.schedule("staff-a")
    make.schedule("staff-b")
    return make


@pytest.fixture
def client(engine, settings):
    from app.main import create_app

    app = create_app(settings=settings, engine=engine, clock=fixed_clock, configure_logging=False)
    with TestClient(app) as test_client:
        yield test_client
