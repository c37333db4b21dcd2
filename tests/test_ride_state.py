"""Unit tests for ride / driver entity state transitions (State Pattern)."""

import pytest

from ridehail.domain.entities import (
    Driver,
    DriverUnavailable,
    InvalidStateTransition,
    Location,
    Ride,
)
from ridehail.domain.enums import (
    TERMINAL_STATUSES,
    DriverStatus,
    RideStatus,
    can_transition,
)


class TestRideStateMachine:
    def test_initial_status_is_requested(self):
        ride = Ride()
        assert ride.status == RideStatus.REQUESTED

    # ── Valid transitions ─────────────────────────────────────────

    def test_requested_to_driver_assigned(self):
        ride = Ride(id=1)
        ride.assign(7, Location(28.63, 77.21))
        assert ride.status == RideStatus.DRIVER_ASSIGNED
        assert ride.driver_id == 7

    def test_requested_to_no_drivers(self):
        ride = Ride()
        ride.transition_to(RideStatus.NO_DRIVERS)
        assert ride.status == RideStatus.NO_DRIVERS

    def test_requested_to_cancelled(self):
        ride = Ride()
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED

    def test_full_trip(self):
        ride = Ride(id=1)
        ride.assign(7, None)
        for status in (
            RideStatus.DRIVER_ARRIVED,
            RideStatus.IN_PROGRESS,
            RideStatus.COMPLETED,
        ):
            ride.transition_to(status)
        assert ride.status == RideStatus.COMPLETED

    def test_cancel_clears_driver_id(self):
        ride = Ride(status=RideStatus.DRIVER_ARRIVED, driver_id=7)
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.driver_id is None

    def test_completion_keeps_driver_id(self):
        ride = Ride(status=RideStatus.IN_PROGRESS, driver_id=7)
        ride.transition_to(RideStatus.COMPLETED)
        assert ride.driver_id == 7

    # ── Invalid transitions ───────────────────────────────────────

    def test_requested_to_in_progress_raises(self):
        ride = Ride()
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.IN_PROGRESS)

    def test_skip_driver_arrived_raises(self):
        ride = Ride(status=RideStatus.DRIVER_ASSIGNED, driver_id=7)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.IN_PROGRESS)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    def test_terminal_statuses_are_final(self, terminal):
        ride = Ride(status=terminal, driver_id=7)
        for target in RideStatus:
            with pytest.raises(InvalidStateTransition):
                ride.transition_to(target)

    def test_driver_bound_status_needs_driver(self):
        ride = Ride()
        with pytest.raises(InvalidStateTransition, match="needs a driver"):
            ride.transition_to(RideStatus.DRIVER_ASSIGNED)
        assert ride.status == RideStatus.REQUESTED

    def test_reassign_to_other_driver_raises(self):
        ride = Ride(id=1, status=RideStatus.DRIVER_ASSIGNED, driver_id=7)
        with pytest.raises(InvalidStateTransition, match="already assigned"):
            ride.assign(8, None)


class TestCanTransition:
    def test_accepts_strings(self):
        assert can_transition("requested", "driver_assigned")
        assert can_transition("in_progress", "completed")

    def test_rejects_illegal_moves(self):
        assert not can_transition(RideStatus.COMPLETED, RideStatus.CANCELLED)
        assert not can_transition(RideStatus.REQUESTED, RideStatus.COMPLETED)

    def test_unknown_status_is_rejected(self):
        assert not can_transition("requested", "teleported")
        assert not can_transition("pending", "driver_assigned")

    @pytest.mark.parametrize("current", list(RideStatus))
    @pytest.mark.parametrize("new", list(RideStatus))
    def test_entity_follows_validator(self, current, new):
        ride = Ride(status=current, driver_id=7)
        if can_transition(current, new):
            ride.transition_to(new)
            assert ride.status == new
        else:
            with pytest.raises(InvalidStateTransition):
                ride.transition_to(new)


class TestDriverAvailability:
    def test_active_driver_goes_online(self):
        driver = Driver(id=1, status=DriverStatus.ACTIVE)
        driver.go_online()
        assert driver.is_available

    @pytest.mark.parametrize(
        "status", [DriverStatus.PENDING, DriverStatus.REJECTED, DriverStatus.INACTIVE]
    )
    def test_non_active_driver_cannot_go_online(self, status):
        driver = Driver(id=1, status=status)
        with pytest.raises(DriverUnavailable):
            driver.go_online()
        assert not driver.is_available

    def test_driver_on_ride_cannot_go_online(self):
        driver = Driver(id=1, status=DriverStatus.ACTIVE, current_ride_id=42)
        with pytest.raises(DriverUnavailable, match="still on ride 42"):
            driver.go_online()

    def test_go_offline(self):
        driver = Driver(id=1, status=DriverStatus.ACTIVE, is_available=True)
        driver.go_offline()
        assert not driver.is_available
