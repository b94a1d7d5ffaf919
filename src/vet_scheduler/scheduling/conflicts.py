"""
Conflict detection for proposed bookings.

Checks run in a fixed order: past date, then working hours, then overlap
with the veterinarian's active appointments. The first failing check raises.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..exceptions import ConflictError, OutsideWorkingHoursError, PastDateError
from ..models.appointment import Appointment
from ..utils.datetime_utils import from_utc
from .calendar_grid import WindowLike, interval_within_windows

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Validate ``[start, start + duration)`` for one veterinarian."""

    def __init__(self, clinic_timezone: str = "UTC"):
        self.clinic_timezone = clinic_timezone

    def check_not_past(
        self,
        start: datetime,
        now: datetime,
        notice: timedelta = timedelta(0),
    ) -> None:
        """
        Raises:
            PastDateError: If ``start`` is before ``now + notice``
        """
        earliest = now + notice
        if start < now:
            raise PastDateError(requested_start=start, earliest_allowed=earliest)
        if start < earliest:
            raise PastDateError(
                "Appointments must be booked further in advance",
                requested_start=start,
                earliest_allowed=earliest,
            )

    def check_working_hours(
        self,
        veterinarian_id: uuid.UUID,
        start: datetime,
        end: datetime,
        windows: Iterable[WindowLike],
    ) -> None:
        """
        Raises:
            OutsideWorkingHoursError: If no single window contains the interval
        """
        local_day = from_utc(start, self.clinic_timezone).date()
        if not interval_within_windows(
            start, end, local_day, windows, self.clinic_timezone
        ):
            raise OutsideWorkingHoursError(
                veterinarian_id=veterinarian_id, requested_start=start
            )

    @staticmethod
    def find_overlap(
        start: datetime,
        end: datetime,
        appointments: Iterable[Appointment],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Appointment]:
        """Return the first active appointment overlapping ``[start, end)``."""
        for appointment in appointments:
            if exclude_id is not None and appointment.id == exclude_id:
                continue
            if appointment.is_active and appointment.overlaps(start, end):
                return appointment
        return None

    def check(
        self,
        veterinarian_id: uuid.UUID,
        start: datetime,
        duration_minutes: int,
        windows: Iterable[WindowLike],
        appointments: Iterable[Appointment],
        now: datetime,
        notice: timedelta = timedelta(0),
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Validate a proposed booking without side effects.

        Args:
            veterinarian_id: Veterinarian whose calendar is being booked
            start: Proposed start (UTC)
            duration_minutes: Proposed length
            windows: The veterinarian's working-hour windows
            appointments: The veterinarian's appointments near the interval
            now: Current instant
            notice: Minimum booking lead time
            exclude_id: Appointment to ignore when re-validating it

        Raises:
            PastDateError: Start is before ``now + notice``
            OutsideWorkingHoursError: No window contains the interval
            ConflictError: An active appointment overlaps the interval
        """
        end = start + timedelta(minutes=duration_minutes)

        self.check_not_past(start, now, notice)
        self.check_working_hours(veterinarian_id, start, end, windows)

        clash = self.find_overlap(start, end, appointments, exclude_id)
        if clash is not None:
            logger.info(
                f"Booking {start.isoformat()} for veterinarian {veterinarian_id} "
                f"overlaps appointment {clash.id}"
            )
            raise ConflictError(
                veterinarian_id=veterinarian_id, conflicting_appointment_id=clash.id
            )
