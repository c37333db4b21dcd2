"""Ride event dispatch: matcher, settlement and notifier wiring."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ridehail.domain.enums import RideStatus
from ridehail.workers.events import RideEventDispatcher
from ridehail.workers.matcher import MatchResult


@pytest.fixture
def calls():
    return []


@pytest.fixture
def dispatcher(calls):
    matcher = AsyncMock()
    notifier = AsyncMock()
    settlement = AsyncMock()
    settlement.settle.side_effect = lambda ride_id: calls.append(("settle", ride_id))
    notifier.notify.side_effect = lambda ride_id, before, after, driver_id=None: calls.append(
        ("notify", ride_id, before, after)
    )
    return RideEventDispatcher(matcher=matcher, notifier=notifier, settlement=settlement)


@pytest.mark.asyncio
async def test_ride_created_notifies_assignment(dispatcher, calls):
    dispatcher.matcher.match.return_value = MatchResult(
        ride_id=1, status=RideStatus.DRIVER_ASSIGNED, driver_id=7, distance_km=1.2, eta_minutes=3
    )

    result = await dispatcher.ride_created(1)

    assert result.driver_id == 7
    assert calls == [("notify", 1, RideStatus.REQUESTED, RideStatus.DRIVER_ASSIGNED)]


@pytest.mark.asyncio
async def test_ride_created_notifies_no_drivers(dispatcher, calls):
    dispatcher.matcher.match.return_value = MatchResult(ride_id=1, status=RideStatus.NO_DRIVERS)

    await dispatcher.ride_created(1)

    assert calls == [("notify", 1, RideStatus.REQUESTED, RideStatus.NO_DRIVERS)]


@pytest.mark.asyncio
async def test_ride_created_without_outcome_is_silent(dispatcher, calls):
    dispatcher.matcher.match.return_value = None

    assert await dispatcher.ride_created(1) is None
    assert calls == []


@pytest.mark.asyncio
async def test_completion_settles_before_notifying(dispatcher, calls):
    await dispatcher.ride_status_changed(5, "in_progress", "completed")

    assert calls == [
        ("settle", 5),
        ("notify", 5, RideStatus.IN_PROGRESS, RideStatus.COMPLETED),
    ]


@pytest.mark.asyncio
async def test_other_changes_only_notify(dispatcher, calls):
    await dispatcher.ride_status_changed(5, RideStatus.DRIVER_ASSIGNED, RideStatus.CANCELLED)

    assert calls == [("notify", 5, RideStatus.DRIVER_ASSIGNED, RideStatus.CANCELLED)]


@pytest.mark.asyncio
async def test_unchanged_status_is_ignored(dispatcher, calls):
    await dispatcher.ride_status_changed(5, RideStatus.COMPLETED, RideStatus.COMPLETED)
    assert calls == []


@pytest.mark.asyncio
async def test_released_driver_is_passed_to_notifier(dispatcher):
    await dispatcher.ride_status_changed(
        5, RideStatus.DRIVER_ASSIGNED, RideStatus.CANCELLED, driver_id=7
    )

    dispatcher.notifier.notify.assert_awaited_once_with(
        5, RideStatus.DRIVER_ASSIGNED, RideStatus.CANCELLED, driver_id=7
    )
