"""
Purpose: Domain models for the Bookings capability.
What it does:
- Defines the Booking record submitted by the booking form
  (name, phone, pickup, hospital, service type, created_at)
- Defines ServiceType = BASIC | ADVANCED
- Applies the form validation rules: every field required, whitespace trimmed.

Rule: No scheduling, no routing. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class InvalidBooking(ValueError):
    """Raised when a booking is missing a required field. No state changes when this is raised."""

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Please fill all fields correctly. Missing: {', '.join(self.missing_fields)}"
        )


class ServiceType(str, Enum):
    """
    Closed set of ambulance service tiers offered by the booking form.
    """
    BASIC = "basic"
    ADVANCED = "advanced"


REQUIRED_FIELDS = ("name", "phone", "pickup", "hospital", "type")


@dataclass(frozen=True)
class Booking:
    """
    An immutable, validated booking. Build it through `Booking.new` so that the
    trimming and required-field rules are always applied.
    """
    name: str
    phone: str
    pickup: str
    hospital: str
    type: ServiceType
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def new(
        cls,
        name: Optional[str],
        phone: Optional[str],
        pickup: Optional[str],
        hospital: Optional[str],
        type: Optional[str | ServiceType],
        created_at: Optional[datetime] = None,
    ) -> Booking:
        values = {
            "name": (name or "").strip(),
            "phone": (phone or "").strip(),
            "pickup": (pickup or "").strip(),
            "hospital": (hospital or "").strip(),
        }

        service_type: Optional[ServiceType]
        if isinstance(type, ServiceType):
            service_type = type
        elif isinstance(type, str):
            try:
                service_type = ServiceType(type.strip().lower())
            except ValueError:
                service_type = None
        else:
            service_type = None

        missing = [field_name for field_name in REQUIRED_FIELDS[:-1] if not values[field_name]]
        if service_type is None:
            missing.append("type")
        if missing:
            raise InvalidBooking(missing)

        return cls(
            type=service_type,
            created_at=created_at or datetime.now(),
            **values,
        )

    @classmethod
    def from_form(cls, form: Dict[str, Any]) -> Booking:
        """Build a booking from a raw form mapping (missing keys count as empty)."""
        return cls.new(
            name=form.get("name"),
            phone=form.get("phone"),
            pickup=form.get("pickup"),
            hospital=form.get("hospital"),
            type=form.get("type"),
            created_at=form.get("created_at"),
        )

    def summary(self) -> str:
        """The confirmation summary shown after a booking is accepted."""
        return "\n".join([
            "Booking confirmed:",
            f"Patient: {self.name}",
            f"Phone: {self.phone}",
            f"Pickup: {self.pickup}",
            f"Destination: {self.hospital}",
            f"Type: {self.type.value.upper()}",
            f"Time: {self.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        ])

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "pickup": self.pickup,
            "hospital": self.hospital,
            "type": self.type.value,
            "created_at": self.created_at.isoformat(),
        }

    @staticmethod
    def from_dict(d: dict) -> Booking:
        return Booking.new(
            name=d.get("name"),
            phone=d.get("phone"),
            pickup=d.get("pickup"),
            hospital=d.get("hospital"),
            type=d.get("type"),
            created_at=datetime.fromisoformat(d["created_at"]) if d.get("created_at") else None,
        )
