"""
Ride status notifier.

For every status change the passenger (and the assigned driver, if any)
gets a push message through the gateway when they registered a device
token, plus a row in the in-app notification centre.  Push failures are
logged and never stop the notification row from being written.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.domain.enums import RecipientRole
from ridehail.domain.notifications import Message, driver_message, passenger_message
from ridehail.infrastructure.models import NotificationModel
from ridehail.infrastructure.push import PushDeliveryError, PushGateway
from ridehail.infrastructure.repositories import (
    DriverRepository,
    NotificationRepository,
    RideRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class RideNotifier:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        push: PushGateway,
    ):
        self.session_factory = session_factory
        self.push = push

    async def notify(
        self, ride_id: int, before, after, driver_id: Optional[int] = None
    ) -> int:
        """Notify both parties of *after*.  Returns notifications stored.

        A cancelled ride no longer carries its driver, so the caller passes
        the released *driver_id* to reach them.
        """
        try:
            return await self._notify(ride_id, after, driver_id)
        except Exception as exc:
            logger.exception(
                "Error sending ride status notification for ride %s: %s", ride_id, exc
            )
            return 0

    async def _notify(self, ride_id: int, status, driver_id: Optional[int]) -> int:
        async with self.session_factory() as session:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                logger.error("Ride %s not found, no notification sent", ride_id)
                return 0

            passenger = await UserRepository(session).get_by_id(ride.passenger_id)
            if passenger is None:
                logger.error(
                    "Passenger %s not found for ride %s", ride.passenger_id, ride_id
                )
                return 0

            notifications = NotificationRepository(session)
            stored = 0

            message = passenger_message(
                status,
                driver_name=ride.driver_name,
                eta=ride.estimated_pickup_time,
                fare=ride.fare,
            )
            await self._deliver(passenger.fcm_token, message, ride_id, status, "passenger", passenger.id)
            await notifications.create(
                _notification(RecipientRole.PASSENGER, passenger.id, message, ride_id, status)
            )
            stored += 1

            if driver_id is None:
                driver_id = ride.driver_id
            if driver_id is not None:
                driver = await DriverRepository(session).get_by_id(driver_id)
                if driver is None:
                    logger.error("Driver %s not found for ride %s", driver_id, ride_id)
                else:
                    message = driver_message(
                        status,
                        passenger_name=ride.passenger_name or passenger.name,
                        fare=ride.fare,
                    )
                    await self._deliver(driver.fcm_token, message, ride_id, status, "driver", driver.id)
                    await notifications.create(
                        _notification(RecipientRole.DRIVER, driver.id, message, ride_id, status)
                    )
                    stored += 1

            await session.commit()
            return stored

    async def _deliver(
        self,
        token: Optional[str],
        message: Message,
        ride_id: int,
        status,
        role: str,
        recipient_id: int,
    ) -> None:
        if not token:
            logger.info("No device token for %s %s, push not sent", role, recipient_id)
            return
        data = {"rideId": ride_id, "status": _value(status), "type": "ride_update"}
        try:
            if await self.push.send(token, message.title, message.body, data):
                logger.info("Notification sent to %s %s for ride %s", role, recipient_id, ride_id)
        except PushDeliveryError as exc:
            logger.error(
                "Error sending push to %s %s for ride %s: %s", role, recipient_id, ride_id, exc
            )


def _value(status) -> str:
    return status.value if hasattr(status, "value") else status


def _notification(
    role: RecipientRole, recipient_id: int, message: Message, ride_id: int, status
) -> NotificationModel:
    return NotificationModel(
        recipient_id=recipient_id,
        recipient_role=role.value,
        title=message.title,
        message=message.body,
        ride_id=ride_id,
        status=_value(status),
        read=False,
    )
