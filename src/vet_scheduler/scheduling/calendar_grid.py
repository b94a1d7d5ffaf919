"""
Calendar grid: cut a veterinarian's working day into bookable slots.

Everything here is a pure function of its arguments. Working-hour windows
are clinic-local wall-clock times; every instant returned is UTC.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Protocol, Tuple

from ..utils.datetime_utils import local_to_utc, time_of_day


class WindowLike(Protocol):
    weekday: int
    start_time: time
    end_time: time


@dataclass(frozen=True)
class WorkingWindow:
    """A detached (weekday, start, end) working-hours window."""

    weekday: int
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"Weekday must be between 0 and 6, got {self.weekday}")
        if time_of_day(self.end_time, closing=True) <= time_of_day(self.start_time):
            raise ValueError("Window end time must be after start time")

    @classmethod
    def from_window(cls, window: WindowLike) -> "WorkingWindow":
        return cls(window.weekday, window.start_time, window.end_time)


def windows_for_weekday(
    windows: Iterable[WindowLike], weekday: int
) -> List[WorkingWindow]:
    """Return the windows that fall on ``weekday``, ordered by start time."""
    return sorted(
        (WorkingWindow.from_window(w) for w in windows if w.weekday == weekday),
        key=lambda w: w.start_time,
    )


def window_bounds(
    day: date, window: WindowLike, timezone: str = "UTC"
) -> Tuple[datetime, datetime]:
    """
    UTC instants at which ``window`` opens and closes on ``day``.

    A window ending at ``00:00`` closes at the midnight after ``day``.
    """
    closing_day = day
    if time_of_day(window.end_time, closing=True) == timedelta(days=1):
        closing_day = day + timedelta(days=1)
    return (
        local_to_utc(day, window.start_time, timezone),
        local_to_utc(closing_day, window.end_time, timezone),
    )


def generate_slot_starts(
    day: date,
    windows: Iterable[WindowLike],
    slot_minutes: int,
    timezone: str = "UTC",
) -> List[datetime]:
    """
    Discretize a calendar day into slot start instants.

    Each slot occupies ``[start, start + slot_minutes)`` and never runs past
    the end of its window; a trailing remainder shorter than one slot is
    dropped. A day with no window yields an empty list.

    Args:
        day: Clinic-local calendar date
        windows: Working-hour windows; only those on ``day``'s weekday are used
        slot_minutes: Slot length in minutes
        timezone: Clinic time zone in which the windows are expressed

    Returns:
        Ascending UTC slot starts

    Raises:
        ValueError: If ``slot_minutes`` is not positive
    """
    if slot_minutes <= 0:
        raise ValueError(f"Slot duration must be positive, got {slot_minutes}")

    step = timedelta(minutes=slot_minutes)
    starts: List[datetime] = []
    for window in windows_for_weekday(windows, day.weekday()):
        opens, closes = window_bounds(day, window, timezone)
        cursor = opens
        while cursor + step <= closes:
            starts.append(cursor)
            cursor += step

    starts.sort()
    return starts


def interval_within_windows(
    start: datetime,
    end: datetime,
    day: date,
    windows: Iterable[WindowLike],
    timezone: str = "UTC",
) -> bool:
    """Check that a single window on ``day`` fully contains ``[start, end)``."""
    for window in windows_for_weekday(windows, day.weekday()):
        opens, closes = window_bounds(day, window, timezone)
        if opens <= start and end <= closes:
            return True
    return False
