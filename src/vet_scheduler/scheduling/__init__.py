"""
Appointment scheduling core.

Calendar grid, availability resolution, conflict detection and the
appointment lifecycle, orchestrated by :class:`SchedulingService`.
"""

from .availability import (
    AvailabilityResolver,
    Slot,
    SlotStatus,
    VeterinarianAvailability,
)
from .calendar_grid import (
    WorkingWindow,
    generate_slot_starts,
    interval_within_windows,
    windows_for_weekday,
)
from .conflicts import ConflictDetector
from .directory import InMemoryPetDirectory, PetDirectory
from .events import (
    EventSink,
    InMemoryEventSink,
    LoggingEventSink,
    SchedulingEvent,
    SchedulingEventType,
)
from .lifecycle import TRANSITIONS, LifecycleManager, TransitionRule
from .locks import VeterinarianLockRegistry
from .service import SchedulingService
from .store import (
    InMemorySchedulingStore,
    SchedulingStore,
    SchedulingTransaction,
    SqlAlchemySchedulingStore,
)

__all__ = [
    # Calendar grid
    "WorkingWindow",
    "generate_slot_starts",
    "interval_within_windows",
    "windows_for_weekday",
    # Availability
    "AvailabilityResolver",
    "Slot",
    "SlotStatus",
    "VeterinarianAvailability",
    # Conflicts and lifecycle
    "ConflictDetector",
    "LifecycleManager",
    "TransitionRule",
    "TRANSITIONS",
    # Collaborators
    "PetDirectory",
    "InMemoryPetDirectory",
    "EventSink",
    "LoggingEventSink",
    "InMemoryEventSink",
    "SchedulingEvent",
    "SchedulingEventType",
    # Persistence and concurrency
    "SchedulingStore",
    "SchedulingTransaction",
    "InMemorySchedulingStore",
    "SqlAlchemySchedulingStore",
    "VeterinarianLockRegistry",
    # Service
    "SchedulingService",
]
