"""
Payment settlement for completed rides.

Capture itself is delegated to the payment provider; this worker prices
the trip, records the transaction and books the money: driver earnings
(fare minus commission), the platform's commission total and the
passenger's lifetime totals.  Everything is one database transaction.
On failure the ride is marked ``payment_status = failed`` with the error.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.config import settings
from ridehail.domain.enums import PaymentStatus, RideStatus
from ridehail.domain.pricing import FareCalculator
from ridehail.infrastructure.models import TransactionModel
from ridehail.infrastructure.repositories import (
    DriverRepository,
    PaymentRepository,
    RideRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


def new_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{random.randrange(1_000_000)}"


class PaymentSettlement:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        calculator: Optional[FareCalculator] = None,
        currency: str = settings.currency,
    ):
        self.session_factory = session_factory
        self.calculator = calculator or FareCalculator(
            base_fare=settings.base_fare,
            per_minute_rate=settings.per_minute_rate,
            per_km_rate=settings.per_km_rate,
            commission=settings.platform_commission,
        )
        self.currency = currency

    async def settle(self, ride_id: int) -> Optional[str]:
        """Settle one completed ride.  Returns the transaction id on success."""
        logger.info("Processing payment for completed ride %s", ride_id)
        try:
            return await self._settle(ride_id)
        except Exception as exc:
            logger.exception("Error processing payment for ride %s: %s", ride_id, exc)
            await self._mark_failed(ride_id, str(exc))
            return None

    async def _settle(self, ride_id: int) -> Optional[str]:
        async with self.session_factory() as session:
            rides = RideRepository(session)
            ride = await rides.get_by_id(ride_id)
            if ride is None:
                logger.error("Ride %s not found, nothing to settle", ride_id)
                return None
            if ride.status != RideStatus.COMPLETED:
                logger.warning(
                    "Ride %s is %s, not completed; skipping payment", ride_id, ride.status
                )
                return None
            if ride.transaction_id:
                logger.info("Ride %s already settled (%s)", ride_id, ride.transaction_id)
                return ride.transaction_id
            if not ride.passenger_id or not ride.driver_id:
                logger.error(
                    "Missing passenger or driver id for ride %s (passenger=%s, driver=%s)",
                    ride_id,
                    ride.passenger_id,
                    ride.driver_id,
                )
                return None

            fare = self.calculator.final_fare(
                estimated_fare=ride.estimated_fare,
                start_time=ride.start_time,
                end_time=ride.end_time,
                distance_km=ride.distance_km,
                base_fare=ride.base_fare,
                per_minute_rate=ride.per_minute_rate,
                per_km_rate=ride.per_km_rate,
                surge_factor=ride.surge_factor,
            )

            passenger = await UserRepository(session).get_by_id(ride.passenger_id)
            if passenger is None:
                logger.error(
                    "Passenger %s not found for ride %s", ride.passenger_id, ride_id
                )
                return None

            method = passenger.default_payment_method or ride.payment_method
            if not method:
                logger.error(
                    "No payment method found for passenger %s, ride %s",
                    passenger.id,
                    ride_id,
                )
                await rides.update(
                    ride_id,
                    payment_status=PaymentStatus.FAILED.value,
                    payment_error="No payment method found",
                )
                await session.commit()
                return None

            payout = self.calculator.split(fare)
            txn_id = new_transaction_id()

            await PaymentRepository(session).record_transaction(
                TransactionModel(
                    transaction_id=txn_id,
                    ride_id=ride_id,
                    passenger_id=ride.passenger_id,
                    driver_id=ride.driver_id,
                    amount=fare,
                    currency=self.currency,
                    payment_method=method,
                    status=PaymentStatus.COMPLETED.value,
                    type="ride_payment",
                )
            )
            await rides.update(
                ride_id,
                fare=fare,
                payment_status=PaymentStatus.COMPLETED.value,
                payment_error=None,
                transaction_id=txn_id,
            )
            await DriverRepository(session).credit(ride.driver_id, payout.driver_earnings)
            await PaymentRepository(session).add_platform_earnings(payout.platform_commission)
            await UserRepository(session).record_ride(ride.passenger_id, fare)
            await session.commit()

            logger.info(
                "Payment processed for ride %s: %s %.2f (driver %.2f, platform %.2f)",
                ride_id,
                txn_id,
                fare,
                payout.driver_earnings,
                payout.platform_commission,
            )
            return txn_id

    async def _mark_failed(self, ride_id: int, error: str) -> None:
        try:
            async with self.session_factory() as session:
                await RideRepository(session).update(
                    ride_id,
                    payment_status=PaymentStatus.FAILED.value,
                    payment_error=error[:255],
                )
                await session.commit()
        except Exception:
            logger.exception("Error updating ride %s with payment failure", ride_id)
