"""
Vet Scheduler Package

Appointment scheduling and veterinarian availability for the veterinary
clinic platform.

This package answers "which veterinarian has an open slot on date D" and
books appointments without double-booking, even when requests arrive
concurrently. It includes:

- A calendar grid that cuts weekly working hours into bookable slots
- An availability resolver labelling each slot free, occupied or unavailable
- A conflict detector for past dates, working hours and overlaps
- The appointment status state machine with its actor permission table
- SQLAlchemy models, an async store and Alembic migrations
- Pydantic schemas for request validation and response serialization

Quick Start:
    >>> from datetime import date, datetime, timezone
    >>> from vet_scheduler import (
    ...     Actor, InMemoryPetDirectory, InMemorySchedulingStore,
    ...     SchedulingService, SchedulingSettings, Veterinarian,
    ... )

    >>> store = InMemorySchedulingStore()
    >>> vet = Veterinarian(name="Dr. Vega")
    >>> vet.add_working_hours(0, "09:00", "12:00")
    >>> await store.add_veterinarian(vet)

    >>> service = SchedulingService(store, InMemoryPetDirectory({pet_id: client_id}),
    ...                             SchedulingSettings())
    >>> availability = await service.request_availability(date(2030, 1, 7))
    >>> appointment = await service.book_appointment(
    ...     {"pet_id": pet_id, "veterinarian_id": vet.id,
    ...      "scheduled_at": datetime(2030, 1, 7, 9, tzinfo=timezone.utc)},
    ...     Actor.client(client_id),
    ... )

Requirements:
    - Python 3.11+
    - SQLAlchemy 2.0+
    - Pydantic 2.5+
"""

__version__ = "0.1.0"
__author__ = "Vet Clinic Platform Team"
__email__ = "dev@vetclinic.com"
__license__ = "MIT"
__copyright__ = "Copyright 2025 Vet Clinic Platform Team"

# Import order matters: scheduling must load before schemas
from . import exceptions
from . import utils
from . import database
from . import models
from . import scheduling
from . import schemas

# Convenience imports for common usage patterns
from .database import create_engine, get_session, get_transaction
from .exceptions import (
    ConflictError,
    DatabaseException,
    InvalidTransitionError,
    NotFoundError,
    OutsideWorkingHoursError,
    PastDateError,
    ValidationException,
    VetSchedulerException,
)
from .models import (
    Actor,
    ActorRole,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Veterinarian,
    WorkingHours,
)
from .scheduling import (
    InMemoryPetDirectory,
    InMemorySchedulingStore,
    SchedulingService,
    SqlAlchemySchedulingStore,
)
from .utils import SchedulingSettings

__all__ = [
    # Version and metadata
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    "__copyright__",
    # Core modules
    "database",
    "exceptions",
    "models",
    "scheduling",
    "schemas",
    "utils",
    # Convenience imports
    "get_session",
    "get_transaction",
    "create_engine",
    "VetSchedulerException",
    "ValidationException",
    "DatabaseException",
    "ConflictError",
    "OutsideWorkingHoursError",
    "PastDateError",
    "InvalidTransitionError",
    "NotFoundError",
    "Actor",
    "ActorRole",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "Veterinarian",
    "WorkingHours",
    "SchedulingService",
    "SchedulingSettings",
    "InMemorySchedulingStore",
    "SqlAlchemySchedulingStore",
    "InMemoryPetDirectory",
]
