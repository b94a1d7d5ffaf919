"""
Availability resolution for a single clinic-local calendar day.

The resolver combines each veterinarian's calendar grid with the active
appointments already booked against them and labels every slot.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..models.appointment import Appointment
from ..models.veterinarian import Veterinarian
from ..utils.datetime_utils import intervals_overlap
from .calendar_grid import generate_slot_starts

logger = logging.getLogger(__name__)


class SlotStatus(enum.Enum):
    """Bookability of a single slot."""

    FREE = "free"
    OCCUPIED = "occupied"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Slot:
    """A candidate interval ``[start, end)`` with its status."""

    start: datetime
    end: datetime
    status: SlotStatus

    @property
    def is_free(self) -> bool:
        return self.status == SlotStatus.FREE


@dataclass
class VeterinarianAvailability:
    """Slot map for one veterinarian on one day."""

    veterinarian_id: uuid.UUID
    name: str
    slot_duration_minutes: int
    slots: List[Slot] = field(default_factory=list)

    @property
    def free_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.is_free]

    @property
    def free_slot_count(self) -> int:
        return len(self.free_slots)

    @property
    def is_available(self) -> bool:
        return any(slot.is_free for slot in self.slots)


class AvailabilityResolver:
    """Compute per-veterinarian slot maps."""

    def __init__(self, clinic_timezone: str = "UTC", default_slot_minutes: int = 30):
        self.clinic_timezone = clinic_timezone
        self.default_slot_minutes = default_slot_minutes

    def slot_minutes_for(self, veterinarian: Veterinarian) -> int:
        return veterinarian.slot_duration_minutes or self.default_slot_minutes

    def resolve_veterinarian(
        self,
        day: date,
        veterinarian: Veterinarian,
        appointments: Iterable[Appointment],
        now: datetime,
        notice: timedelta = timedelta(0),
    ) -> VeterinarianAvailability:
        """
        Label every slot of ``veterinarian``'s working day.

        A slot starting before ``now + notice`` is UNAVAILABLE whatever else
        is true about it. Otherwise it is OCCUPIED when it intersects an
        active appointment and FREE when it does not.
        """
        slot_minutes = self.slot_minutes_for(veterinarian)
        step = timedelta(minutes=slot_minutes)
        earliest = now + notice
        active = [a for a in appointments if a.is_active]

        slots = []
        for start in generate_slot_starts(
            day, veterinarian.working_hours, slot_minutes, self.clinic_timezone
        ):
            end = start + step
            if start < earliest:
                status = SlotStatus.UNAVAILABLE
            elif any(
                intervals_overlap(start, end, a.scheduled_at, a.end_time)
                for a in active
            ):
                status = SlotStatus.OCCUPIED
            else:
                status = SlotStatus.FREE
            slots.append(Slot(start, end, status))

        return VeterinarianAvailability(
            veterinarian_id=veterinarian.id,
            name=veterinarian.name,
            slot_duration_minutes=slot_minutes,
            slots=slots,
        )

    def resolve(
        self,
        day: date,
        veterinarians: Sequence[Veterinarian],
        appointments_by_veterinarian: Mapping[uuid.UUID, Sequence[Appointment]],
        now: datetime,
        notice: timedelta = timedelta(0),
        veterinarian_id: Optional[uuid.UUID] = None,
    ) -> List[VeterinarianAvailability]:
        """
        Resolve availability for every veterinarian on ``day``.

        Args:
            day: Clinic-local calendar date
            veterinarians: Profiles to consider
            appointments_by_veterinarian: Appointments keyed by veterinarian id
            now: Current instant
            notice: Minimum lead time before a slot becomes bookable
            veterinarian_id: Optional filter to a single veterinarian

        Returns:
            Entries ordered by name (case-insensitive), then id
        """
        selected = [
            v
            for v in veterinarians
            if veterinarian_id is None or v.id == veterinarian_id
        ]
        selected.sort(key=lambda v: (v.name.casefold(), str(v.id)))

        results: List[VeterinarianAvailability] = []
        for veterinarian in selected:
            results.append(
                self.resolve_veterinarian(
                    day,
                    veterinarian,
                    appointments_by_veterinarian.get(veterinarian.id, ()),
                    now,
                    notice,
                )
            )

        logger.debug(
            f"Resolved availability for {len(results)} veterinarian(s) on {day}"
        )
        return results


def group_by_veterinarian(
    appointments: Iterable[Appointment],
) -> Dict[uuid.UUID, List[Appointment]]:
    """Bucket appointments by their assigned veterinarian, skipping unassigned."""
    grouped: Dict[uuid.UUID, List[Appointment]] = {}
    for appointment in appointments:
        if appointment.veterinarian_id is not None:
            grouped.setdefault(appointment.veterinarian_id, []).append(appointment)
    return grouped
