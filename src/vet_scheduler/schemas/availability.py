"""
Availability Pydantic schemas.

Query validation for availability requests and the serialized slot map
returned to callers.
"""

from datetime import date as Date
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..scheduling.availability import SlotStatus


class AvailabilityQuery(BaseModel):
    """Schema for an availability request."""

    date: Date = Field(..., description="Clinic-local calendar date")
    veterinarian_id: Optional[UUID] = Field(
        None, description="Restrict the answer to one veterinarian"
    )
    only_available: bool = Field(
        False, description="Drop veterinarians without a free slot"
    )


class SlotResponse(BaseModel):
    """Schema for one slot."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    start: datetime = Field(..., description="Slot start (UTC)")
    end: datetime = Field(..., description="Slot end, exclusive (UTC)")
    status: SlotStatus = Field(..., description="free, occupied or unavailable")


class VeterinarianAvailabilityResponse(BaseModel):
    """Schema for one veterinarian's slot map."""

    model_config = ConfigDict(from_attributes=True)

    veterinarian_id: UUID = Field(..., description="Veterinarian's unique identifier")
    name: str = Field(..., description="Veterinarian's display name")
    slot_duration_minutes: int = Field(..., description="Slot length in minutes")
    is_available: bool = Field(..., description="Whether any slot is free")
    free_slot_count: int = Field(..., description="Number of free slots")
    slots: List[SlotResponse] = Field(default_factory=list, description="Slots in time order")


class AvailabilityResponse(BaseModel):
    """Schema for an availability answer covering one day."""

    date: Date = Field(..., description="Clinic-local calendar date")
    timezone: str = Field(..., description="Clinic time zone")
    veterinarians: List[VeterinarianAvailabilityResponse] = Field(
        default_factory=list,
        description="Veterinarians ordered by name",
    )

    @property
    def available_veterinarians(self) -> List[VeterinarianAvailabilityResponse]:
        return [v for v in self.veterinarians if v.is_available]

    def for_veterinarian(
        self, veterinarian_id: UUID
    ) -> Optional[VeterinarianAvailabilityResponse]:
        for entry in self.veterinarians:
            if entry.veterinarian_id == veterinarian_id:
                return entry
        return None
