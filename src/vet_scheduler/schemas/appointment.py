"""
Appointment Pydantic schemas for request validation and serialization.

This module contains the booking and transition request schemas accepted by
the scheduling service and the response schemas it is serialized with.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.appointment import MAX_DURATION_MINUTES, AppointmentStatus
from ..models.appointment_type import AppointmentType


def _clean_text(v: Optional[str], max_length: int) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if len(v) > max_length:
        raise ValueError(f"Text field is too long (maximum {max_length} characters)")
    return v


def _aware_utc(v: datetime) -> datetime:
    if v.tzinfo is None or v.utcoffset() is None:
        raise ValueError("Scheduled time must be timezone-aware")
    return v.astimezone(timezone.utc)


class BookingRequest(BaseModel):
    """Schema for booking a new appointment."""

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    pet_id: UUID = Field(..., description="Pet the appointment is for")
    veterinarian_id: Optional[UUID] = Field(
        None, description="Requested veterinarian; omit to let staff assign one"
    )
    scheduled_at: datetime = Field(
        ..., description="Start of the appointment, timezone-aware"
    )
    appointment_type: Optional[AppointmentType] = Field(
        None, description="Kind of visit; inferred from the reason when omitted"
    )
    duration_minutes: Optional[int] = Field(
        None,
        description="Override of the appointment type's default duration",
        gt=0,
        le=MAX_DURATION_MINUTES,
    )
    reason: Optional[str] = Field(
        None, description="Reason for the appointment or chief complaint"
    )
    notes: Optional[str] = Field(
        None, description="Additional notes about the appointment"
    )

    @field_validator("scheduled_at")
    @classmethod
    def validate_scheduled_at(cls, v: datetime) -> datetime:
        """Require timezone awareness and normalize to UTC."""
        return _aware_utc(v)

    @field_validator("reason", "notes")
    @classmethod
    def validate_text_fields(cls, v: Optional[str]) -> Optional[str]:
        """Validate text fields."""
        return _clean_text(v, 2000)


class RescheduleRequest(BaseModel):
    """Schema for moving a pending appointment to a new start time."""

    model_config = ConfigDict(str_strip_whitespace=True)

    scheduled_at: datetime = Field(
        ..., description="New start of the appointment, timezone-aware"
    )
    reason: Optional[str] = Field(
        None, description="Updated reason for the appointment"
    )

    @field_validator("scheduled_at")
    @classmethod
    def validate_scheduled_at(cls, v: datetime) -> datetime:
        return _aware_utc(v)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v, 2000)


class TransitionRequest(BaseModel):
    """Schema for moving an appointment to a new status."""

    target_status: AppointmentStatus = Field(..., description="Requested status")
    reason: Optional[str] = Field(
        None, description="Reason for cancellation (if applicable)"
    )
    veterinarian_id: Optional[UUID] = Field(
        None,
        description="Veterinarian to assign when an admin confirms an unassigned appointment",
    )

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        """Validate cancellation reason."""
        return _clean_text(v, 500)

    @model_validator(mode="after")
    def validate_consistency(self) -> "TransitionRequest":
        """Reasons belong to cancellations and assignments to confirmations."""
        if self.reason and self.target_status != AppointmentStatus.CANCELLED:
            raise ValueError("A reason can only be given when cancelling")
        if self.veterinarian_id and self.target_status != AppointmentStatus.CONFIRMED:
            raise ValueError("A veterinarian can only be assigned when confirming")
        return self


class AppointmentResponse(BaseModel):
    """Schema for appointment response data."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )

    id: UUID = Field(..., description="Appointment's unique identifier")
    pet_id: UUID = Field(..., description="Pet's unique identifier")
    client_id: UUID = Field(..., description="Owning client's unique identifier")
    veterinarian_id: Optional[UUID] = Field(
        None, description="Assigned veterinarian, if any"
    )
    appointment_type: AppointmentType = Field(..., description="Kind of visit")
    scheduled_at: datetime = Field(..., description="Scheduled date and time")
    end_time: datetime = Field(..., description="Exclusive end of the appointment")
    duration_minutes: int = Field(..., description="Expected duration in minutes")
    status: AppointmentStatus = Field(..., description="Current appointment status")
    reason: Optional[str] = Field(None, description="Reason for the appointment")
    notes: Optional[str] = Field(None, description="Additional notes")
    confirmed_at: Optional[datetime] = Field(None, description="Confirmation timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    cancelled_at: Optional[datetime] = Field(None, description="Cancellation timestamp")
    cancellation_reason: Optional[str] = Field(
        None, description="Reason for cancellation"
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class AppointmentTypeResponse(BaseModel):
    """Schema for an appointment type catalog entry."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    type: AppointmentType = Field(..., description="Appointment type identifier")
    label: str = Field(..., description="Display label")
    duration_minutes: int = Field(..., description="Default duration in minutes")
    price: Decimal = Field(..., description="List price")
