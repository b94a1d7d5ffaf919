"""
Scheduling notifications.

Events are emitted after a change is stored. Delivery is fire and forget:
a failing sink is logged and never undoes the change.
"""

import enum
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import log_exception_context
from ..models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


class SchedulingEventType(enum.Enum):
    BOOKED = "appointment.booked"
    TRANSITIONED = "appointment.transitioned"
    RESCHEDULED = "appointment.rescheduled"


@dataclass(frozen=True)
class SchedulingEvent:
    """A booking, status change or reschedule that has been stored."""

    type: SchedulingEventType
    appointment_id: uuid.UUID
    veterinarian_id: Optional[uuid.UUID]
    actor_id: uuid.UUID
    status: AppointmentStatus
    occurred_at: datetime
    previous_status: Optional[AppointmentStatus] = None

    @classmethod
    def for_appointment(
        cls,
        event_type: SchedulingEventType,
        appointment: Appointment,
        actor_id: uuid.UUID,
        occurred_at: datetime,
        previous_status: Optional[AppointmentStatus] = None,
    ) -> "SchedulingEvent":
        return cls(
            type=event_type,
            appointment_id=appointment.id,
            veterinarian_id=appointment.veterinarian_id,
            actor_id=actor_id,
            status=appointment.status,
            occurred_at=occurred_at,
            previous_status=previous_status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "appointment_id": str(self.appointment_id),
            "veterinarian_id": (
                str(self.veterinarian_id) if self.veterinarian_id else None
            ),
            "actor_id": str(self.actor_id),
            "status": self.status.value,
            "previous_status": (
                self.previous_status.value if self.previous_status else None
            ),
            "occurred_at": self.occurred_at.isoformat(),
        }


class EventSink(ABC):
    """Destination for scheduling events (notifications, audit log)."""

    @abstractmethod
    async def emit(self, event: SchedulingEvent) -> None:
        """Deliver one event."""


class LoggingEventSink(EventSink):
    """Write each event to the ``vet_scheduler`` log."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    async def emit(self, event: SchedulingEvent) -> None:
        logger.log(
            self.level,
            f"{event.type.value}: appointment {event.appointment_id} is now "
            f"{event.status.value}",
            extra={"scheduling_event": event.to_dict()},
        )


class InMemoryEventSink(EventSink):
    """Collect events in a list, for tests."""

    def __init__(self) -> None:
        self.events: List[SchedulingEvent] = []

    async def emit(self, event: SchedulingEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: SchedulingEventType) -> List[SchedulingEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


async def dispatch_event(sink: Optional[EventSink], event: SchedulingEvent) -> None:
    """Emit ``event`` to ``sink``, logging instead of raising on failure."""
    if sink is None:
        return
    try:
        await sink.emit(event)
    except Exception as e:
        log_exception_context(
            e,
            {"operation": "emit_event", "event": event.to_dict()},
            logger=logger,
            level=logging.WARNING,
        )
