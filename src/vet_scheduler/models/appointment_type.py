"""
Appointment type catalog.

Immutable reference data describing the kinds of visit the clinic offers,
with their default duration and list price.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple


class AppointmentType(enum.Enum):
    """Enumeration of bookable appointment types."""

    CONSULTATION = "consultation"
    VACCINATION = "vaccination"
    SURGERY = "surgery"
    EMERGENCY = "emergency"
    CHECKUP = "checkup"
    DENTAL = "dental"


@dataclass(frozen=True)
class AppointmentTypeInfo:
    """Catalog entry for a single appointment type."""

    type: AppointmentType
    label: str
    duration_minutes: int
    price: Decimal

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.type.value,
            "label": self.label,
            "duration_minutes": self.duration_minutes,
            "price": str(self.price),
        }


APPOINTMENT_TYPE_CATALOG: Dict[AppointmentType, AppointmentTypeInfo] = {
    info.type: info
    for info in (
        AppointmentTypeInfo(
            AppointmentType.CONSULTATION, "General consultation", 30, Decimal("275")
        ),
        AppointmentTypeInfo(
            AppointmentType.VACCINATION, "Vaccination", 20, Decimal("195")
        ),
        AppointmentTypeInfo(AppointmentType.SURGERY, "Surgery", 120, Decimal("1550")),
        AppointmentTypeInfo(AppointmentType.EMERGENCY, "Emergency", 45, Decimal("620")),
        AppointmentTypeInfo(AppointmentType.CHECKUP, "Check-up", 25, Decimal("235")),
        AppointmentTypeInfo(AppointmentType.DENTAL, "Dental", 60, Decimal("465")),
    )
}

# Checked in order; the first type with a matching keyword wins
_REASON_KEYWORDS: Tuple[Tuple[AppointmentType, Tuple[str, ...]], ...] = (
    (AppointmentType.VACCINATION, ("vaccin", "vacun", "inmuniz", "immuniz")),
    (AppointmentType.SURGERY, ("surg", "cirug", "operac", "operat")),
    (AppointmentType.EMERGENCY, ("emergenc", "urgen")),
    (AppointmentType.CHECKUP, ("check", "chequeo", "revision", "control")),
    (AppointmentType.DENTAL, ("dental", "diente", "tooth", "teeth")),
)


def get_appointment_type_info(appointment_type: AppointmentType) -> AppointmentTypeInfo:
    """Look up the catalog entry for ``appointment_type``."""
    return APPOINTMENT_TYPE_CATALOG[appointment_type]


def list_appointment_types() -> List[AppointmentTypeInfo]:
    """Return every catalog entry in declaration order."""
    return [APPOINTMENT_TYPE_CATALOG[t] for t in AppointmentType]


def infer_appointment_type(reason: Optional[str]) -> AppointmentType:
    """
    Guess the appointment type from a free-text visit reason.

    Matching is a case-insensitive substring search over a small keyword
    list in English and Spanish. Anything unrecognised is a consultation.

    Example:
        >>> infer_appointment_type("Annual vaccination booster")
        <AppointmentType.VACCINATION: 'vaccination'>
    """
    if not reason:
        return AppointmentType.CONSULTATION

    lowered = reason.lower()
    for appointment_type, keywords in _REASON_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return appointment_type
    return AppointmentType.CONSULTATION
