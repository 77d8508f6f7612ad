"""Domain models for candidate rides and the drivers they are scored against."""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

_TRUE_STRINGS = {"true", "yes", "1", "y"}
_MILES_PATTERN = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*(?:mi|mile|miles)?\.?\s*$", re.IGNORECASE)


def parse_bool(value: Any) -> bool:
    """Interpret spreadsheet-style flags ("true", "TRUE", True, 1) as booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def parse_miles(value: Any) -> Optional[float]:
    """Parse a precomputed mileage such as 7.5, "7.5" or "7.5 mi"."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    match = _MILES_PATTERN.match(str(value))
    if not match:
        return None
    miles = float(match.group(1))
    return miles if miles > 0 else None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class RideCandidate:
    """A ride waiting for a driver. Read-only for the scoring engine."""

    id: str
    pickup_location: Optional[str] = None
    provider_location: Optional[str] = None
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    round_trip: bool = False
    notes: str = ""
    appointment_type: Optional[str] = None
    distance_to_provider: Optional[float] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RideCandidate":
        """Build a ride from a camelCase record as produced by the scheduling workflow."""
        known = {
            "id",
            "pickupLocation",
            "providerLocation",
            "appointmentDate",
            "appointmentTime",
            "roundTrip",
            "notes",
            "appointmentType",
            "distanceToProvider",
        }
        ride_id = _clean(record.get("id"))
        if ride_id is None:
            raise ValueError("Ride record is missing an id.")
        return cls(
            id=ride_id,
            pickup_location=_clean(record.get("pickupLocation")),
            provider_location=_clean(record.get("providerLocation")),
            appointment_date=_clean(record.get("appointmentDate")),
            appointment_time=_clean(record.get("appointmentTime")),
            round_trip=parse_bool(record.get("roundTrip")),
            notes=_clean(record.get("notes")) or "",
            appointment_type=_clean(record.get("appointmentType")),
            distance_to_provider=parse_miles(record.get("distanceToProvider")),
            extra={key: value for key, value in record.items() if key not in known},
        )


@dataclass(frozen=True, slots=True)
class DriverProfile:
    """The driver a batch of rides is ranked for."""

    address: Optional[str] = None
    preferred_shift: Optional[str] = None
    availability: Optional[str] = None
    age_group: Optional[str] = None
    employment: Optional[str] = None
    slot_acceptance_rates: Mapping[str, float] = field(default_factory=dict)

    @property
    def has_address(self) -> bool:
        return bool(self.address and self.address.strip())

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "DriverProfile":
        rates = record.get("slotAcceptanceRates") or {}
        return cls(
            address=_clean(record.get("address")),
            preferred_shift=_lower(record.get("preferredShift")),
            availability=_lower(record.get("availability")),
            age_group=_lower(record.get("ageGroup")),
            employment=_lower(record.get("employment")),
            slot_acceptance_rates={str(slot): float(rate) for slot, rate in rates.items()},
        )


def _lower(value: Any) -> Optional[str]:
    text = _clean(value)
    return text.lower() if text else None
