#!/usr/bin/env python3
"""
Basic usage examples for the vet-scheduler package.

Walks through a clinic morning: publish a veterinarian's hours, look up
free slots, book, hit the common booking errors and move an appointment
through its lifecycle. Runs against the in-memory store by default; set
DATABASE_URL to use a real database instead.
"""

import asyncio
import logging
import os
import uuid
from datetime import date, datetime, timedelta, timezone

from vet_scheduler import (
    Actor,
    AppointmentStatus,
    ConflictError,
    InMemoryPetDirectory,
    InMemorySchedulingStore,
    InvalidTransitionError,
    OutsideWorkingHoursError,
    SchedulingService,
    SchedulingSettings,
    SqlAlchemySchedulingStore,
    Veterinarian,
    create_engine,
)
from vet_scheduler.database import SessionManager
from vet_scheduler.models import Base
from vet_scheduler.scheduling import LoggingEventSink
from vet_scheduler.schemas import AppointmentResponse
from vet_scheduler.utils import LoggingConfigurator


def next_monday() -> date:
    today = date.today()
    return today + timedelta(days=7 - today.weekday())


async def build_store():
    """Pick the store backend from the environment."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        return InMemorySchedulingStore(), None

    engine = create_engine(database_url)
    manager = SessionManager(engine)
    await manager.create_all(Base.metadata)
    return SqlAlchemySchedulingStore(manager), manager


async def main():
    LoggingConfigurator.configure_basic_logging()
    logger = logging.getLogger("basic_usage_example")

    store, manager = await build_store()
    client_id, pet_id = uuid.uuid4(), uuid.uuid4()
    directory = InMemoryPetDirectory({pet_id: client_id})
    service = SchedulingService(
        store, directory, SchedulingSettings(), event_sink=LoggingEventSink()
    )

    print("\n=== Publishing working hours ===")
    vet = Veterinarian(name="Dr. Vega", email="vega@example.com")
    vet.add_working_hours(0, "09:00", "12:00")
    await store.add_veterinarian(vet)
    print(f"✓ {vet.name} works Monday 09:00-12:00")

    monday = next_monday()
    client = Actor.client(client_id)
    at = lambda hour, minute=0: datetime(  # noqa: E731
        monday.year, monday.month, monday.day, hour, minute, tzinfo=timezone.utc
    )

    print("\n=== Availability ===")
    availability = await service.request_availability(monday)
    for entry in availability.veterinarians:
        starts = [
            slot.start.strftime("%H:%M") for slot in entry.slots if slot.status.value == "free"
        ]
        print(f"✓ {entry.name}: {entry.free_slot_count} free slots {starts}")

    print("\n=== Booking ===")
    appointment = await service.book_appointment(
        {
            "pet_id": pet_id,
            "veterinarian_id": vet.id,
            "scheduled_at": at(10),
            "reason": "Annual vaccine booster",
        },
        client,
    )
    print(
        f"✓ Booked {appointment.appointment_type.value} at "
        f"{appointment.scheduled_at:%H:%M} ({appointment.status.value})"
    )

    for label, start in (("overlapping", at(10, 10)), ("early", at(8))):
        try:
            await service.book_appointment(
                {"pet_id": pet_id, "veterinarian_id": vet.id, "scheduled_at": start},
                client,
            )
        except (ConflictError, OutsideWorkingHoursError) as e:
            print(f"✗ {label} booking rejected: [{e.error_code}] {e.message}")

    appointment = await service.reschedule_appointment(appointment.id, at(10, 30), client)
    print(f"✓ Moved to {appointment.scheduled_at:%H:%M} while still pending")

    print("\n=== Lifecycle ===")
    try:
        await service.transition_appointment(
            appointment.id, AppointmentStatus.COMPLETED, client
        )
    except InvalidTransitionError as e:
        print(f"✗ Client cannot complete: {e.message}")

    confirmed = await service.transition_appointment(
        appointment.id, AppointmentStatus.CONFIRMED, Actor.veterinarian(vet.id)
    )
    print(f"✓ {vet.name} confirmed: {confirmed.status.value}")

    calendar = await service.list_appointments(
        Actor.veterinarian(vet.id), start=at(0), end=at(0) + timedelta(days=1)
    )
    for entry in calendar:
        print(AppointmentResponse.model_validate(entry).model_dump_json(indent=2))

    remaining = await service.request_availability(monday, veterinarian_id=vet.id)
    logger.info("Free slots after booking: %d", remaining.veterinarians[0].free_slot_count)

    if manager is not None:
        await manager.close()


if __name__ == "__main__":
    asyncio.run(main())
