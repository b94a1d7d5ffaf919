"""
Pydantic schemas for data validation and serialization.

This module contains Pydantic schemas for scheduling request validation
and response serialization.
"""

from .appointment import (
    AppointmentResponse,
    AppointmentTypeResponse,
    BookingRequest,
    RescheduleRequest,
    TransitionRequest,
)
from .availability import (
    AvailabilityQuery,
    AvailabilityResponse,
    SlotResponse,
    VeterinarianAvailabilityResponse,
)
from .veterinarian import VeterinarianCreate, VeterinarianResponse, WorkingHoursSchema

__all__ = [
    # Appointment schemas
    "BookingRequest",
    "RescheduleRequest",
    "TransitionRequest",
    "AppointmentResponse",
    "AppointmentTypeResponse",
    # Availability schemas
    "AvailabilityQuery",
    "AvailabilityResponse",
    "SlotResponse",
    "VeterinarianAvailabilityResponse",
    # Veterinarian schemas
    "WorkingHoursSchema",
    "VeterinarianCreate",
    "VeterinarianResponse",
]
