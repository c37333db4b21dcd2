"""Ride status -> human readable notification text, per recipient role."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import RideStatus


@dataclass(frozen=True)
class Message:
    title: str
    body: str


# Body templates are filled with str.format(**fields)
PASSENGER_TEMPLATES: dict[RideStatus, tuple[str, str]] = {
    RideStatus.DRIVER_ASSIGNED: (
        "Driver Assigned",
        "{driver_name} is on the way. ETA: {eta}",
    ),
    RideStatus.DRIVER_ARRIVED: (
        "Driver Arrived",
        "{driver_name} has arrived at your pickup location",
    ),
    RideStatus.IN_PROGRESS: ("Ride Started", "Your ride has started"),
    RideStatus.COMPLETED: (
        "Ride Completed",
        "Your ride has been completed. Total fare: ₹{fare}",
    ),
    RideStatus.CANCELLED: ("Ride Cancelled", "Your ride has been cancelled"),
    RideStatus.NO_DRIVERS: (
        "No Drivers Available",
        "No drivers are currently available. Please try again later",
    ),
}

DRIVER_TEMPLATES: dict[RideStatus, tuple[str, str]] = {
    RideStatus.DRIVER_ASSIGNED: (
        "New Ride Assigned",
        "New ride request from {passenger_name}",
    ),
    RideStatus.CANCELLED: ("Ride Cancelled", "The ride has been cancelled"),
    RideStatus.COMPLETED: ("Ride Completed", "Ride completed. Earnings: ₹{fare}"),
}


def format_eta(timestamp: Optional[datetime]) -> str:
    """Format a pickup time as ``9:05 PM``."""
    if timestamp is None:
        return "Unknown"
    return timestamp.strftime("%I:%M %p").lstrip("0")


def _amount(fare) -> str:
    if fare is None:
        return "0"
    return f"{fare:g}"


def _status_value(status) -> str:
    return status.value if hasattr(status, "value") else status


def _template(templates: dict, status) -> Optional[tuple[str, str]]:
    try:
        return templates.get(RideStatus(status))
    except ValueError:
        return None


def passenger_message(
    status,
    driver_name: Optional[str] = None,
    eta: Optional[datetime] = None,
    fare=None,
) -> Message:
    value = _status_value(status)
    template = _template(PASSENGER_TEMPLATES, status)
    if template is None:
        return Message("Ride Status Update", f"Your ride status has changed to {value}")
    title, body = template
    return Message(
        title,
        body.format(driver_name=driver_name, eta=format_eta(eta), fare=_amount(fare)),
    )


def driver_message(status, passenger_name: Optional[str] = None, fare=None) -> Message:
    value = _status_value(status)
    template = _template(DRIVER_TEMPLATES, status)
    if template is None:
        return Message("Ride Status Update", f"Ride status has changed to {value}")
    title, body = template
    return Message(
        title,
        body.format(passenger_name=passenger_name or "a passenger", fare=_amount(fare)),
    )
