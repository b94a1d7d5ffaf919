"""
Appointment model for the vet-scheduler package.

This module contains the Appointment SQLAlchemy model with its status
enumeration and the transition audit fields written by the scheduling
service.
"""

import enum
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .appointment_type import AppointmentType, get_appointment_type_info
from .base import BaseModel


class AppointmentStatus(enum.Enum):
    """Enumeration of appointment statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
)

# Longest bookable appointment; bounds the look-back of overlap queries
MAX_DURATION_MINUTES = 480


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Appointment(BaseModel):
    """
    A booked visit for one pet, optionally assigned to a veterinarian.

    Appointments start in PENDING. Only active appointments (PENDING or
    CONFIRMED) occupy a veterinarian's calendar.
    """

    __tablename__ = "appointments"

    def __init__(self, **kwargs):
        """Initialize Appointment with default values."""
        if "status" not in kwargs:
            kwargs["status"] = AppointmentStatus.PENDING
        if "appointment_type" not in kwargs:
            kwargs["appointment_type"] = AppointmentType.CONSULTATION
        if "duration_minutes" not in kwargs:
            kwargs["duration_minutes"] = get_appointment_type_info(
                kwargs["appointment_type"]
            ).duration_minutes

        super().__init__(**kwargs)

    pet_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
        comment="UUID of the pet for this appointment",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
        comment="UUID of the client who owns the pet",
    )

    veterinarian_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("veterinarians.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="UUID of the assigned veterinarian, if any",
    )

    appointment_type: Mapped[AppointmentType] = mapped_column(
        Enum(
            AppointmentType,
            name="appointmenttype",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AppointmentType.CONSULTATION,
        comment="Kind of visit",
    )

    # Scheduling information
    scheduled_at: Mapped[datetime] = mapped_column(
        nullable=False,
        index=True,
        comment="Start instant of the appointment (UTC)",
    )

    duration_minutes: Mapped[int] = mapped_column(
        nullable=False,
        default=30,
        comment="Expected duration of the appointment in minutes",
    )

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(
            AppointmentStatus,
            name="appointmentstatus",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True,
        comment="Current status of the appointment",
    )

    reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Reason for the appointment or chief complaint",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Additional notes about the appointment",
    )

    # Transition audit
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        nullable=True, comment="When the appointment was confirmed"
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        nullable=True, comment="When the appointment was completed"
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        nullable=True, comment="When the appointment was cancelled"
    )

    cancellation_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Reason for appointment cancellation",
    )

    __table_args__ = (
        CheckConstraint(
            "duration_minutes > 0", name="ck_appointments_duration_positive"
        ),
        CheckConstraint(
            f"duration_minutes <= {MAX_DURATION_MINUTES}",
            name="ck_appointments_duration_max",
        ),
        Index("idx_appointments_vet_scheduled", "veterinarian_id", "scheduled_at"),
        Index("idx_appointments_status_scheduled", "status", "scheduled_at"),
        Index("idx_appointments_client_status", "client_id", "status"),
    )

    def __repr__(self) -> str:
        """String representation of the Appointment model."""
        return (
            f"<Appointment(id={self.id}, pet_id={self.pet_id}, "
            f"scheduled_at='{self.scheduled_at}', status='{self.status.value}')>"
        )

    @property
    def end_time(self) -> datetime:
        """Exclusive end of the appointment interval."""
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        """Check if the appointment still occupies the calendar."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Check if the appointment is completed or cancelled."""
        return self.status in TERMINAL_STATUSES

    @property
    def is_assigned(self) -> bool:
        return self.veterinarian_id is not None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap test against ``[start, end)``."""
        return self.scheduled_at < end and start < self.end_time

    def record_status(
        self,
        status: AppointmentStatus,
        at: datetime,
        actor_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Write a status change and its audit fields.

        Permission and state checks belong to the lifecycle manager; this
        method only records an already-validated change.
        """
        self.status = status
        self.updated_at = at
        if actor_id is not None:
            self.updated_by = actor_id

        if status == AppointmentStatus.CONFIRMED:
            self.confirmed_at = at
        elif status == AppointmentStatus.COMPLETED:
            self.completed_at = at
        elif status == AppointmentStatus.CANCELLED:
            self.cancelled_at = at
            if reason:
                self.cancellation_reason = reason

    def record_reschedule(
        self,
        scheduled_at: datetime,
        at: datetime,
        actor_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Write an already-validated move to a new start time."""
        self.scheduled_at = scheduled_at
        self.updated_at = at
        if actor_id is not None:
            self.updated_by = actor_id
        if reason:
            self.reason = reason
