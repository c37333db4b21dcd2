"""Notification texts, the push gateway client and the notifier worker."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy import select

from ridehail.domain.enums import RideStatus
from ridehail.domain.notifications import driver_message, format_eta, passenger_message
from ridehail.infrastructure.models import NotificationModel
from ridehail.infrastructure.push import PushDeliveryError, PushGateway
from ridehail.workers.notifier import RideNotifier


class TestMessages:
    def test_format_eta(self):
        assert format_eta(datetime(2026, 3, 14, 21, 5)) == "9:05 PM"
        assert format_eta(datetime(2026, 3, 14, 0, 30)) == "12:30 AM"
        assert format_eta(datetime(2026, 3, 14, 12, 0)) == "12:00 PM"
        assert format_eta(datetime(2026, 3, 14, 10, 45)) == "10:45 AM"
        assert format_eta(None) == "Unknown"

    def test_driver_assigned_for_passenger(self):
        msg = passenger_message(
            RideStatus.DRIVER_ASSIGNED,
            driver_name="Ramesh",
            eta=datetime(2026, 3, 14, 9, 15),
        )
        assert msg.title == "Driver Assigned"
        assert msg.body == "Ramesh is on the way. ETA: 9:15 AM"

    def test_completed_quotes_fare(self):
        msg = passenger_message(RideStatus.COMPLETED, fare=65.0)
        assert msg.body == "Your ride has been completed. Total fare: ₹65"

    def test_no_drivers(self):
        msg = passenger_message("no_drivers")
        assert msg.title == "No Drivers Available"

    def test_unknown_status_falls_back(self):
        msg = passenger_message("requested")
        assert msg.title == "Ride Status Update"
        assert msg.body == "Your ride status has changed to requested"

    def test_driver_messages(self):
        assert driver_message(RideStatus.DRIVER_ASSIGNED, "Aarav").body == (
            "New ride request from Aarav"
        )
        assert driver_message(RideStatus.DRIVER_ASSIGNED).body.endswith("a passenger")
        assert driver_message(RideStatus.COMPLETED, fare=52.5).body == (
            "Ride completed. Earnings: ₹52.5"
        )
        assert driver_message(RideStatus.DRIVER_ARRIVED).title == "Ride Status Update"


class TestPushGateway:
    @pytest.mark.asyncio
    async def test_disabled_without_url(self):
        gateway = PushGateway()
        assert not gateway.enabled
        assert await gateway.send("tok", "t", "b", {}) is False
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_posts_envelope(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = PushGateway("http://push.test/send", client=client)

        assert await gateway.send("tok", "Title", "Body", {"rideId": 7}) is True

        assert seen[0].url == "http://push.test/send"
        body = seen[0].read().decode()
        assert '"token":"tok"' in body.replace(" ", "")
        assert '"rideId":"7"' in body.replace(" ", "")
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_gateway_error_raises(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        gateway = PushGateway("http://push.test/send", client=client)
        with pytest.raises(PushDeliveryError):
            await gateway.send("tok", "Title", "Body", {})
        await gateway.aclose()


@pytest.fixture
def push():
    gateway = AsyncMock(spec=PushGateway)
    gateway.send.return_value = True
    return gateway


async def _notifications(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(NotificationModel).order_by(NotificationModel.id))
        return list(result.scalars().all())


class TestRideNotifier:
    @pytest.mark.asyncio
    async def test_assignment_notifies_both_parties(self, session_factory, seed, make_user, make_driver, make_ride, push):
        user = await seed(make_user(fcm_token="passenger-token"))
        driver = await seed(make_driver(fcm_token="driver-token", is_available=False))
        ride = await seed(
            make_ride(
                user.id,
                status=RideStatus.DRIVER_ASSIGNED,
                driver_id=driver.id,
                driver_name="Ramesh Yadav",
                estimated_pickup_time=datetime(2026, 3, 14, 9, 15, tzinfo=timezone.utc),
            )
        )

        stored = await RideNotifier(session_factory, push).notify(
            ride.id, RideStatus.REQUESTED, RideStatus.DRIVER_ASSIGNED
        )

        assert stored == 2
        assert push.send.await_count == 2
        token, title, body, data = push.send.await_args_list[0].args
        assert token == "passenger-token"
        assert title == "Driver Assigned"
        assert body == "Ramesh Yadav is on the way. ETA: 9:15 AM"
        assert data == {"rideId": ride.id, "status": "driver_assigned", "type": "ride_update"}

        rows = await _notifications(session_factory)
        assert [(n.recipient_role, n.recipient_id) for n in rows] == [
            ("passenger", user.id),
            ("driver", driver.id),
        ]
        assert rows[1].message == "New ride request from Aarav Sharma"
        assert all(not n.read and n.status == "driver_assigned" for n in rows)

    @pytest.mark.asyncio
    async def test_no_drivers_notifies_passenger_only(self, session_factory, seed, make_user, make_ride, push):
        user = await seed(make_user(fcm_token="passenger-token"))
        ride = await seed(make_ride(user.id, status=RideStatus.NO_DRIVERS))

        stored = await RideNotifier(session_factory, push).notify(
            ride.id, RideStatus.REQUESTED, RideStatus.NO_DRIVERS
        )

        assert stored == 1
        rows = await _notifications(session_factory)
        assert rows[0].title == "No Drivers Available"

    @pytest.mark.asyncio
    async def test_missing_token_still_stores_notification(self, session_factory, seed, make_user, make_ride, push):
        user = await seed(make_user(fcm_token=None))
        ride = await seed(make_ride(user.id, status=RideStatus.CANCELLED))

        stored = await RideNotifier(session_factory, push).notify(
            ride.id, RideStatus.REQUESTED, RideStatus.CANCELLED
        )

        assert stored == 1
        push.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_push_failure_does_not_block_storage(self, session_factory, seed, make_user, make_ride, push):
        push.send.side_effect = PushDeliveryError("gateway down")
        user = await seed(make_user(fcm_token="passenger-token"))
        ride = await seed(make_ride(user.id, status=RideStatus.CANCELLED))

        stored = await RideNotifier(session_factory, push).notify(
            ride.id, RideStatus.REQUESTED, RideStatus.CANCELLED
        )

        assert stored == 1
        assert len(await _notifications(session_factory)) == 1

    @pytest.mark.asyncio
    async def test_cancellation_reaches_released_driver(self, session_factory, seed, make_user, make_driver, make_ride, push):
        user = await seed(make_user(fcm_token="passenger-token"))
        driver = await seed(make_driver(fcm_token="driver-token", is_available=True))
        ride = await seed(make_ride(user.id, status=RideStatus.CANCELLED, driver_id=None))

        stored = await RideNotifier(session_factory, push).notify(
            ride.id, RideStatus.DRIVER_ASSIGNED, RideStatus.CANCELLED, driver_id=driver.id
        )

        assert stored == 2
        rows = await _notifications(session_factory)
        assert [(n.recipient_role, n.recipient_id) for n in rows] == [
            ("passenger", user.id),
            ("driver", driver.id),
        ]
        assert rows[1].message == "The ride has been cancelled"

    @pytest.mark.asyncio
    async def test_unknown_ride(self, session_factory, push):
        stored = await RideNotifier(session_factory, push).notify(
            404, RideStatus.REQUESTED, RideStatus.CANCELLED
        )
        assert stored == 0
        push.send.assert_not_awaited()
