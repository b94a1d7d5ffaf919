"""
Veterinarian Pydantic schemas for availability profile validation.

This module contains the schemas used to register a veterinarian with
weekly working hours and to serialize the stored profile.
"""

from datetime import time
from typing import List, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from ..models.veterinarian import Veterinarian
from ..utils.datetime_utils import time_of_day


class WorkingHoursSchema(BaseModel):
    """Schema for one weekly working-hours window."""

    model_config = ConfigDict(from_attributes=True)

    weekday: int = Field(..., description="0 = Monday through 6 = Sunday", ge=0, le=6)
    start_time: time = Field(..., description="Window start, clinic-local")
    end_time: time = Field(
        ..., description="Window end, clinic-local; 00:00 closes at midnight"
    )

    @model_validator(mode="after")
    def validate_window(self) -> "WorkingHoursSchema":
        """Validate that the window is not empty."""
        if time_of_day(self.end_time, closing=True) <= time_of_day(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class VeterinarianCreate(BaseModel):
    """Schema for registering a veterinarian availability profile."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[UUID] = Field(None, description="Identifier from the staff directory")
    name: str = Field(..., description="Display name", min_length=1, max_length=200)
    email: Optional[EmailStr] = Field(None, description="Contact email", max_length=255)
    is_active: bool = Field(True, description="Whether the veterinarian takes bookings")
    slot_duration_minutes: int = Field(
        30, description="Length of a bookable slot in minutes", gt=0, le=480
    )
    working_hours: List[WorkingHoursSchema] = Field(
        default_factory=list, description="Weekly working-hours windows"
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        """Normalize email to lowercase."""
        return v.lower() if v else None

    @model_validator(mode="after")
    def validate_no_overlapping_windows(self) -> "VeterinarianCreate":
        """Windows on the same weekday must not overlap."""
        ordered = sorted(self.working_hours, key=lambda w: (w.weekday, w.start_time))
        for previous, current in zip(ordered, ordered[1:]):
            if (
                previous.weekday == current.weekday
                and time_of_day(current.start_time)
                < time_of_day(previous.end_time, closing=True)
            ):
                raise ValueError(
                    f"Working hours overlap on weekday {current.weekday}: "
                    f"{previous.start_time}-{previous.end_time} and "
                    f"{current.start_time}-{current.end_time}"
                )
        return self

    def to_model(self) -> Veterinarian:
        """Build an unsaved Veterinarian with its working hours attached."""
        fields = self.model_dump(exclude={"working_hours", "id"})
        if self.id is not None:
            fields["id"] = self.id
        veterinarian = Veterinarian(**fields)
        for window in self.working_hours:
            veterinarian.add_working_hours(
                window.weekday, window.start_time, window.end_time
            )
        return veterinarian


class VeterinarianResponse(BaseModel):
    """Schema for veterinarian profile response data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Veterinarian's unique identifier")
    name: str = Field(..., description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    is_active: bool = Field(..., description="Whether the veterinarian takes bookings")
    slot_duration_minutes: int = Field(..., description="Slot length in minutes")
    working_hours: List[WorkingHoursSchema] = Field(
        default_factory=list, description="Weekly working-hours windows"
    )
