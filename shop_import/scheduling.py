"""Service type inference and next-due projections for imported history."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Mapping, Optional, Tuple

OIL_CHANGE = "oil_change"
TIRE_ROTATION = "tire_rotation"
STATE_INSPECTION = "state_inspection"
BRAKE_SERVICE = "brake_service"
TRANSMISSION = "transmission"

DEFAULT_SERVICE_TYPE = OIL_CHANGE
DEFAULT_INTERVAL_DAYS = 90
DEFAULT_INTERVAL_MILES = 5000

# First match wins, so the order matters.
_SERVICE_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("oil", "5w"), OIL_CHANGE),
    (("tire rotation", "rotate"), TIRE_ROTATION),
    (("inspection",), STATE_INSPECTION),
    (("brake",), BRAKE_SERVICE),
    (("transmission",), TRANSMISSION),
)


def infer_service_type(description: Optional[str]) -> str:
    """Map a free-text repair description onto a service type tag."""

    if not description:
        return DEFAULT_SERVICE_TYPE
    lowered = description.lower()
    for keywords, service_type in _SERVICE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return service_type
    return DEFAULT_SERVICE_TYPE


@dataclass(frozen=True)
class ServiceInterval:
    days: int = DEFAULT_INTERVAL_DAYS
    miles: int = DEFAULT_INTERVAL_MILES


@dataclass
class ServiceSchedule:
    """Intervals used to project when a vehicle is next due."""

    default: ServiceInterval = field(default_factory=ServiceInterval)
    overrides: Dict[str, ServiceInterval] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls,
        intervals: Optional[Mapping[str, Mapping[str, int]]] = None,
        *,
        default_days: int = DEFAULT_INTERVAL_DAYS,
        default_miles: int = DEFAULT_INTERVAL_MILES,
    ) -> "ServiceSchedule":
        default = ServiceInterval(days=default_days, miles=default_miles)
        overrides: Dict[str, ServiceInterval] = {}
        for service_type, values in (intervals or {}).items():
            overrides[service_type] = ServiceInterval(
                days=int(values.get("days", default.days)),
                miles=int(values.get("miles", default.miles)),
            )
        return cls(default=default, overrides=overrides)

    def interval_for(self, service_type: str) -> ServiceInterval:
        return self.overrides.get(service_type, self.default)

    def next_due_date(self, service_date: date, service_type: str) -> date:
        return next_due_date(service_date, self.interval_for(service_type).days)

    def next_due_mileage(self, mileage: int, service_type: str) -> int:
        return next_due_mileage(mileage, self.interval_for(service_type).miles)


def next_due_date(service_date: date, interval_days: Optional[int] = None) -> date:
    days = DEFAULT_INTERVAL_DAYS if interval_days is None else interval_days
    return service_date + timedelta(days=days)


def next_due_mileage(mileage: int, interval_miles: Optional[int] = None) -> int:
    return mileage + (DEFAULT_INTERVAL_MILES if interval_miles is None else interval_miles)


__all__ = [
    "BRAKE_SERVICE",
    "DEFAULT_INTERVAL_DAYS",
    "DEFAULT_INTERVAL_MILES",
    "DEFAULT_SERVICE_TYPE",
    "OIL_CHANGE",
    "STATE_INSPECTION",
    "ServiceInterval",
    "ServiceSchedule",
    "TIRE_ROTATION",
    "TRANSMISSION",
    "infer_service_type",
    "next_due_date",
    "next_due_mileage",
]
