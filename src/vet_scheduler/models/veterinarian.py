"""
Veterinarian availability profile models for the vet-scheduler package.

This module contains the Veterinarian model and its recurring weekly
WorkingHours windows. Bookable slots are never stored; they are derived from
these windows at query time.
"""

import uuid
from datetime import time
from typing import Any, List, Optional, Union

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..utils.datetime_utils import DayOfWeek, time_of_day
from .base import BaseModel

TimeLike = Union[time, str]


def _parse_time(value: TimeLike) -> time:
    """Accept a ``time`` or an ``HH:MM`` string."""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid time value: {value!r}, expected HH:MM")


class WorkingHours(BaseModel):
    """
    A recurring weekly window during which a veterinarian is bookable.

    Times are clinic-local wall-clock times. ``weekday`` follows Python's
    ``date.weekday()`` convention (0 = Monday). An ``end_time`` of ``00:00``
    closes the window at the midnight ending ``weekday``.
    """

    __tablename__ = "working_hours"

    veterinarian_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("veterinarians.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="UUID of the veterinarian this window belongs to",
    )

    weekday: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        comment="Day of week, 0 = Monday through 6 = Sunday",
    )

    start_time: Mapped[time] = mapped_column(
        Time, nullable=False, comment="Window start, clinic-local"
    )

    end_time: Mapped[time] = mapped_column(
        Time, nullable=False, comment="Window end, clinic-local"
    )

    __table_args__ = (
        CheckConstraint(
            "weekday >= 0 AND weekday <= 6", name="ck_working_hours_weekday_range"
        ),
        # 00:00 as an end time is the closing midnight
        CheckConstraint(
            "end_time > start_time OR end_time < '00:00:01'",
            name="ck_working_hours_end_after_start",
        ),
        Index("idx_working_hours_vet_weekday", "veterinarian_id", "weekday"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkingHours(veterinarian_id={self.veterinarian_id}, "
            f"weekday={self.weekday}, {self.start_time}-{self.end_time})>"
        )

    @property
    def day_name(self) -> str:
        return DayOfWeek(self.weekday).name.capitalize()

    def overlaps(self, other: "WorkingHours") -> bool:
        """Check whether two windows on the same weekday overlap."""
        return (
            self.weekday == other.weekday
            and time_of_day(self.start_time) < time_of_day(other.end_time, closing=True)
            and time_of_day(other.start_time) < time_of_day(self.end_time, closing=True)
        )


class Veterinarian(BaseModel):
    """
    Veterinarian availability profile.

    Holds the identity used for availability ordering, the slot length used
    to cut working hours into bookable slots, and the weekly working hours.
    """

    __tablename__ = "veterinarians"

    def __init__(self, **kwargs: Any) -> None:
        """Initialize Veterinarian with default values."""
        if "is_active" not in kwargs:
            kwargs["is_active"] = True
        if "slot_duration_minutes" not in kwargs:
            kwargs["slot_duration_minutes"] = 30

        super().__init__(**kwargs)

    name: Mapped[str] = mapped_column(
        String(200), nullable=False, comment="Display name used for ordering"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, comment="Contact email address"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive veterinarians are hidden from availability",
    )

    slot_duration_minutes: Mapped[int] = mapped_column(
        nullable=False,
        default=30,
        comment="Length of a bookable slot in minutes",
    )

    working_hours: Mapped[List[WorkingHours]] = relationship(
        WorkingHours,
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=[WorkingHours.weekday, WorkingHours.start_time],
    )

    __table_args__ = (
        CheckConstraint(
            "slot_duration_minutes > 0",
            name="ck_veterinarians_slot_duration_positive",
        ),
        Index("idx_veterinarians_active_name", "is_active", "name"),
    )

    def __repr__(self) -> str:
        return f"<Veterinarian(id={self.id}, name='{self.name}')>"

    def add_working_hours(
        self, weekday: int, start_time: TimeLike, end_time: TimeLike
    ) -> WorkingHours:
        """
        Add a weekly working-hours window.

        Args:
            weekday: 0 = Monday through 6 = Sunday
            start_time: Window start as ``time`` or ``HH:MM``
            end_time: Window end as ``time`` or ``HH:MM``

        Returns:
            The new WorkingHours row, attached to this veterinarian

        Raises:
            ValueError: If the weekday is out of range, the window is empty,
                or it overlaps an existing window on the same day
        """
        if not 0 <= weekday <= 6:
            raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")

        start = _parse_time(start_time)
        end = _parse_time(end_time)
        if time_of_day(end, closing=True) <= time_of_day(start):
            raise ValueError("Working hours end time must be after start time")

        window = WorkingHours(
            veterinarian_id=self.id, weekday=weekday, start_time=start, end_time=end
        )
        for existing in self.working_hours:
            if existing.overlaps(window):
                raise ValueError(
                    f"Working hours {start}-{end} overlap {existing.start_time}-"
                    f"{existing.end_time} on {window.day_name}"
                )

        self.working_hours.append(window)
        return window

    def get_working_hours(self, weekday: int) -> List[WorkingHours]:
        """Return the windows for ``weekday`` in start-time order."""
        return sorted(
            (wh for wh in self.working_hours if wh.weekday == weekday),
            key=lambda wh: wh.start_time,
        )

    def works_on(self, weekday: int) -> bool:
        """Check if the veterinarian has any window on ``weekday``."""
        return any(wh.weekday == weekday for wh in self.working_hours)

    def clear_working_hours(self, weekday: Optional[int] = None) -> None:
        """Remove all windows, or only those on ``weekday``."""
        if weekday is None:
            self.working_hours.clear()
        else:
            self.working_hours[:] = [
                wh for wh in self.working_hours if wh.weekday != weekday
            ]
