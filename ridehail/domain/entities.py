"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride``: enforces valid lifecycle transitions
  (requested -> driver_assigned -> driver_arrived -> in_progress ->
  completed, with cancelled / no_drivers as side exits).
- ``Location.maybe`` hides incomplete or out-of-range positions so the
  matcher can simply skip drivers it cannot place on the map.
- ``Driver.go_online`` keeps "available" and "on a ride" mutually exclusive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .distance import is_valid_coordinate
from .enums import (
    DRIVER_BOUND_STATUSES,
    DriverStatus,
    RideStatus,
    can_transition,
)


class InvalidStateTransition(Exception):
    """Raised when a ride status change violates the state machine."""


class DriverUnavailable(Exception):
    """Raised when a driver cannot take (or give up) a ride."""


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    @classmethod
    def maybe(cls, lat, lng) -> Optional["Location"]:
        """Build a Location, or return None if either part is missing/invalid."""
        if not is_valid_coordinate(lat, lng):
            return None
        return cls(float(lat), float(lng))


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: Optional[int] = None
    passenger_id: int = 0
    passenger_location: Optional[Location] = None
    status: RideStatus = RideStatus.REQUESTED
    driver_id: Optional[int] = None
    driver_location: Optional[Location] = None
    fare: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if not can_transition(self.status, new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        if new_status in DRIVER_BOUND_STATUSES and self.driver_id is None:
            raise InvalidStateTransition(
                f"Ride {self.id} needs a driver before entering {new_status.value}"
            )
        if new_status not in DRIVER_BOUND_STATUSES:
            self.driver_id = None
        self.status = new_status

    def assign(self, driver_id: int, driver_location: Optional[Location]) -> None:
        if self.driver_id is not None and self.driver_id != driver_id:
            raise InvalidStateTransition(
                f"Ride {self.id} is already assigned to driver {self.driver_id}"
            )
        self.driver_id = driver_id
        self.driver_location = driver_location
        self.transition_to(RideStatus.DRIVER_ASSIGNED)


@dataclass
class Driver:
    id: Optional[int] = None
    name: str = ""
    phone: str = ""
    status: DriverStatus = DriverStatus.PENDING
    is_available: bool = False
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    current_ride_id: Optional[int] = None
    rating: float = 0.0

    def go_online(self) -> None:
        if self.status != DriverStatus.ACTIVE:
            raise DriverUnavailable(
                f"Driver {self.id} is {self.status.value} and cannot go online"
            )
        if self.current_ride_id is not None:
            raise DriverUnavailable(
                f"Driver {self.id} is still on ride {self.current_ride_id}"
            )
        self.is_available = True

    def go_offline(self) -> None:
        self.is_available = False


@dataclass
class Candidate:
    """Scored projection of a driver, alive for one matching run only."""

    driver_id: int
    distance_km: float
    rating: float = 0.0
    driver: Any = field(default=None, repr=False, compare=False)
