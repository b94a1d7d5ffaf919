"""
DateTime utilities for appointment scheduling.

This module provides timezone-aware datetime handling used by the calendar
grid and the scheduling service. All persisted instants are UTC; clinic
working hours are expressed in clinic-local wall-clock time.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = ZoneInfo("UTC")


class DayOfWeek(Enum):
    """Enumeration for days of the week."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        """Get the day of the week for a calendar date."""
        return cls(value.weekday())


def get_zone(timezone: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the timezone name is unknown
    """
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{timezone}'") from e


def get_current_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(UTC)


def get_current_local(timezone: str = "UTC") -> datetime:
    """Get the current datetime in a specific timezone."""
    return datetime.now(get_zone(timezone))


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC instant.

    Naive datetimes are assumed to already be UTC, which is how SQLite
    hands back ``DateTime(timezone=True)`` columns.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_to_utc(day: date, wall_time: time, timezone: str) -> datetime:
    """Combine a clinic-local date and wall-clock time into a UTC instant."""
    return datetime.combine(day, wall_time, get_zone(timezone)).astimezone(UTC)


def from_utc(dt: datetime, timezone: str) -> datetime:
    """Convert a UTC datetime to a target timezone."""
    return ensure_utc(dt).astimezone(get_zone(timezone))


def time_of_day(wall_time: time, closing: bool = False) -> timedelta:
    """
    Offset of a wall-clock time from the start of its day.

    With ``closing`` a ``00:00`` reads as the midnight that ends the day, so
    a working-hours window may run up to the end of its day.
    """
    offset = timedelta(
        hours=wall_time.hour,
        minutes=wall_time.minute,
        seconds=wall_time.second,
        microseconds=wall_time.microsecond,
    )
    if closing and not offset:
        return timedelta(days=1)
    return offset


def local_day_bounds(day: date, timezone: str) -> Tuple[datetime, datetime]:
    """
    Get the UTC instants bounding a clinic-local calendar day.

    Returns:
        Half-open ``(start, end)`` pair covering ``day`` in ``timezone``
    """
    start = local_to_utc(day, time.min, timezone)
    end = local_to_utc(day + timedelta(days=1), time.min, timezone)
    return start, end


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open intervals [a, b) and [c, d) overlap iff a < d and c < b."""
    return start_a < end_b and start_b < end_a


def format_duration(minutes: int) -> str:
    """Get a human-readable duration display."""
    if minutes < 60:
        return f"{minutes} minutes"
    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{hours}h {remainder}m"
