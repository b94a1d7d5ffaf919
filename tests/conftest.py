"""
Pytest configuration and fixtures for vet-scheduler tests.

This module provides common fixtures and configuration for all tests
in the vet-scheduler package: a fixed clock, factory classes, in-memory
collaborators and a temporary SQLite database.
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict, Iterable, List, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from vet_scheduler.database.connection import create_engine
from vet_scheduler.database.session import SessionManager
from vet_scheduler.models import (
    Actor,
    Appointment,
    AppointmentStatus,
    Veterinarian,
)
from vet_scheduler.models.base import Base
from vet_scheduler.scheduling import (
    InMemoryEventSink,
    InMemoryPetDirectory,
    InMemorySchedulingStore,
    SchedulingService,
    SqlAlchemySchedulingStore,
)
from vet_scheduler.utils.config import SchedulingSettings

# 2030-01-01 is a Tuesday; 2030-01-07 is the following Monday
FIXED_NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)
MONDAY = date(2030, 1, 7)

HoursSpec = Dict[int, Iterable[Tuple[str, str]]]


def utc_at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    """UTC instant on ``day`` at ``hour:minute``."""
    return datetime.combine(day, time(hour, minute), timezone.utc)


class MutableClock:
    """Callable clock whose time tests can move."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


# Factory classes for creating test entities
class VeterinarianFactory:
    """Factory for creating test Veterinarian profiles."""

    DEFAULT_HOURS: HoursSpec = {0: [("09:00", "12:00")]}

    @staticmethod
    def build(hours: Optional[HoursSpec] = None, **kwargs) -> Veterinarian:
        """Build a Veterinarian with working hours, without storing it."""
        defaults = {
            "name": f"Dr. {uuid.uuid4().hex[:6].capitalize()}",
            "email": f"vet_{uuid.uuid4().hex[:8]}@example.com",
            "slot_duration_minutes": 30,
        }
        defaults.update(kwargs)
        veterinarian = Veterinarian(**defaults)

        schedule = VeterinarianFactory.DEFAULT_HOURS if hours is None else hours
        for weekday, windows in schedule.items():
            for start, end in windows:
                veterinarian.add_working_hours(weekday, start, end)
        return veterinarian

    @staticmethod
    async def create(store, hours: Optional[HoursSpec] = None, **kwargs) -> Veterinarian:
        """Build a Veterinarian and register it with ``store``."""
        return await store.add_veterinarian(
            VeterinarianFactory.build(hours=hours, **kwargs)
        )


class AppointmentFactory:
    """Factory for creating test Appointment instances."""

    @staticmethod
    def build(
        veterinarian_id: Optional[uuid.UUID] = None,
        scheduled_at: Optional[datetime] = None,
        **kwargs,
    ) -> Appointment:
        """Build an Appointment instance without storing it."""
        defaults = {
            "pet_id": uuid.uuid4(),
            "client_id": uuid.uuid4(),
            "veterinarian_id": veterinarian_id,
            "scheduled_at": scheduled_at or utc_at(10),
            "duration_minutes": 30,
            "reason": "Routine visit",
            "created_at": FIXED_NOW,
        }
        defaults.update(kwargs)
        return Appointment(**defaults)

    @staticmethod
    async def create(store, **kwargs) -> Appointment:
        """Build an Appointment and write it through ``store``."""
        appointment = AppointmentFactory.build(**kwargs)
        async with store.serialized(appointment.veterinarian_id) as tx:
            await tx.add_appointment(appointment)
        return appointment


# Fixture factories
@pytest.fixture
def veterinarian_factory() -> VeterinarianFactory:
    """Factory for creating test veterinarians."""
    return VeterinarianFactory


@pytest.fixture
def appointment_factory() -> AppointmentFactory:
    """Factory for creating test appointments."""
    return AppointmentFactory


# Time fixtures
@pytest.fixture
def clock() -> MutableClock:
    """Clock frozen at 2030-01-01 08:00 UTC."""
    return MutableClock()


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def at() -> Callable[..., datetime]:
    """``at(hour, minute=0, day=MONDAY)`` returns a UTC datetime."""
    return utc_at


# Identity fixtures
@pytest.fixture
def client_actor() -> Actor:
    return Actor.client(uuid.uuid4())


@pytest.fixture
def other_client_actor() -> Actor:
    return Actor.client(uuid.uuid4())


@pytest.fixture
def admin_actor() -> Actor:
    return Actor.admin(uuid.uuid4())


@pytest.fixture
def pet_id(pet_directory: InMemoryPetDirectory, client_actor: Actor) -> uuid.UUID:
    """A pet owned by ``client_actor``."""
    pet = uuid.uuid4()
    pet_directory.register(pet, client_actor.id)
    return pet


# Collaborator fixtures
@pytest.fixture
def settings() -> SchedulingSettings:
    return SchedulingSettings()


@pytest.fixture
def pet_directory() -> InMemoryPetDirectory:
    return InMemoryPetDirectory()


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def store() -> InMemorySchedulingStore:
    return InMemorySchedulingStore()


@pytest.fixture
def service(
    store: InMemorySchedulingStore,
    pet_directory: InMemoryPetDirectory,
    settings: SchedulingSettings,
    event_sink: InMemoryEventSink,
    clock: MutableClock,
) -> SchedulingService:
    """Scheduling service over the in-memory store with a frozen clock."""
    return SchedulingService(
        store, pet_directory, settings=settings, event_sink=event_sink, clock=clock
    )


@pytest_asyncio.fixture
async def veterinarian(store: InMemorySchedulingStore) -> Veterinarian:
    """Dr. Adams, working Mondays 09:00-12:00 in 30 minute slots."""
    return await VeterinarianFactory.create(store, name="Dr. Adams")


@pytest.fixture
def vet_actor(veterinarian: Veterinarian) -> Actor:
    return Actor.veterinarian(veterinarian.id)


# Database fixtures
@pytest_asyncio.fixture
async def sqlite_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Async engine over a temporary SQLite file.

    A file rather than ``:memory:`` so every pooled connection sees the
    same tables.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_manager(sqlite_engine: AsyncEngine) -> SessionManager:
    return SessionManager(sqlite_engine)


@pytest_asyncio.fixture
async def sql_store(session_manager: SessionManager) -> SqlAlchemySchedulingStore:
    return SqlAlchemySchedulingStore(session_manager)


@pytest.fixture
def sql_service(
    sql_store: SqlAlchemySchedulingStore,
    pet_directory: InMemoryPetDirectory,
    settings: SchedulingSettings,
    event_sink: InMemoryEventSink,
    clock: MutableClock,
) -> SchedulingService:
    """Scheduling service over the SQLite-backed store."""
    return SchedulingService(
        sql_store, pet_directory, settings=settings, event_sink=event_sink, clock=clock
    )


def free_starts(entry) -> List[datetime]:
    """Start instants of the FREE slots in an availability entry."""
    return [slot.start for slot in entry.slots if slot.status.value == "free"]


@pytest.fixture
def free_slot_starts() -> Callable:
    return free_starts


@pytest.fixture
def active_statuses() -> List[AppointmentStatus]:
    return [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]
