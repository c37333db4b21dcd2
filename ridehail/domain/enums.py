"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    REQUESTED = "requested"
    DRIVER_ASSIGNED = "driver_assigned"
    NO_DRIVERS = "no_drivers"
    DRIVER_ARRIVED = "driver_arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.REQUESTED: {
        RideStatus.DRIVER_ASSIGNED,
        RideStatus.NO_DRIVERS,
        RideStatus.CANCELLED,
    },
    RideStatus.DRIVER_ASSIGNED: {RideStatus.DRIVER_ARRIVED, RideStatus.CANCELLED},
    RideStatus.DRIVER_ARRIVED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
    RideStatus.NO_DRIVERS: set(),
}

TERMINAL_STATUSES = frozenset(
    {RideStatus.COMPLETED, RideStatus.CANCELLED, RideStatus.NO_DRIVERS}
)

# Statuses in which a ride must carry a driver id
DRIVER_BOUND_STATUSES = frozenset(
    {
        RideStatus.DRIVER_ASSIGNED,
        RideStatus.DRIVER_ARRIVED,
        RideStatus.IN_PROGRESS,
        RideStatus.COMPLETED,
    }
)

# Only the matcher may move a ride into these
MATCHER_ONLY_STATUSES = frozenset({RideStatus.DRIVER_ASSIGNED, RideStatus.NO_DRIVERS})


def can_transition(current: RideStatus | str, new: RideStatus | str) -> bool:
    """Return True if a ride may move from *current* to *new*."""
    try:
        current, new = RideStatus(current), RideStatus(new)
    except ValueError:
        return False
    return new in RIDE_TRANSITIONS.get(current, set())


class DriverStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"
    INACTIVE = "inactive"


class PaymentStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class RecipientRole(str, enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
