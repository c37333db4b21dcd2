"""
Ride event dispatch.

Replaces the document-store triggers: routes call the dispatcher after
committing a ride write, and it fans the event out to the handlers.

* ``ride_created``        -> matcher (then the status change it produced)
* ``ride_status_changed`` -> settlement (only on entering ``completed``),
  then notifier.  Settlement runs first so the completion message can
  quote the settled fare.
"""

from __future__ import annotations

import logging

from ridehail.domain.enums import RideStatus
from ridehail.workers.matcher import MatchResult, RideMatcher
from ridehail.workers.notifier import RideNotifier
from ridehail.workers.settlement import PaymentSettlement

logger = logging.getLogger(__name__)


class RideEventDispatcher:
    def __init__(
        self,
        matcher: RideMatcher,
        notifier: RideNotifier,
        settlement: PaymentSettlement,
    ):
        self.matcher = matcher
        self.notifier = notifier
        self.settlement = settlement

    async def ride_created(self, ride_id: int) -> MatchResult | None:
        logger.info("New ride request %s created", ride_id)
        result = await self.matcher.match(ride_id)
        if result is not None:
            await self.ride_status_changed(ride_id, RideStatus.REQUESTED, result.status)
        return result

    async def ride_status_changed(
        self, ride_id: int, before, after, driver_id: int | None = None
    ) -> None:
        """*driver_id* names a driver the change released from the ride."""
        before, after = RideStatus(before), RideStatus(after)
        if before == after:
            return
        logger.info(
            "Ride %s status changed %s -> %s", ride_id, before.value, after.value
        )
        if after == RideStatus.COMPLETED:
            await self.settlement.settle(ride_id)
        await self.notifier.notify(ride_id, before, after, driver_id=driver_id)
