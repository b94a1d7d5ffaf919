"""
Database models for the vet-scheduler package.

This module contains SQLAlchemy models for the scheduling entities together
with the appointment type catalog and the caller identity value.
"""

from .actor import Actor, ActorRole
from .appointment import (
    ACTIVE_STATUSES,
    MAX_DURATION_MINUTES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
)
from .appointment_type import (
    APPOINTMENT_TYPE_CATALOG,
    AppointmentType,
    AppointmentTypeInfo,
    get_appointment_type_info,
    infer_appointment_type,
    list_appointment_types,
)

# Base model will be imported by all other models
from .base import Base, BaseModel
from .veterinarian import Veterinarian, WorkingHours

__all__ = [
    "Base",
    "BaseModel",
    "Actor",
    "ActorRole",
    "Appointment",
    "AppointmentStatus",
    "ACTIVE_STATUSES",
    "MAX_DURATION_MINUTES",
    "TERMINAL_STATUSES",
    "AppointmentType",
    "AppointmentTypeInfo",
    "APPOINTMENT_TYPE_CATALOG",
    "get_appointment_type_info",
    "infer_appointment_type",
    "list_appointment_types",
    "Veterinarian",
    "WorkingHours",
]
