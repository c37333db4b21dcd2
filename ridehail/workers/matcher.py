"""
Ride Matching Worker
====================

Runs once per ride-created event (delivered at least once).

Concurrency safety
------------------
* **Conditional ride write** -- the assignment is ``UPDATE rides ... WHERE
  status = 'requested'``; a duplicate delivery that arrives after the first
  one committed updates nothing and becomes a no-op.
* **Conditional driver write** -- the driver is claimed with ``UPDATE
  drivers ... WHERE is_available AND current_ride_id IS NULL``.  If a
  concurrent run for another ride got there first, the transaction is
  rolled back and the next-ranked candidate is tried.
* Both writes share one transaction, so a ride is never left
  ``driver_assigned`` with a driver still marked available.
* An optional **Redis lock** per ride drops duplicates that overlap in time.

Algorithm per event
-------------------
1. Load the ride; skip unless it is ``requested`` with a usable passenger
   location (a missing location is logged and the ride left untouched).
2. Fetch active + available drivers; none -> ``no_drivers``.
3. Drop drivers without a usable location; none left -> ``no_drivers``.
4. Rank by distance with the rating tie-break (see ``domain.matching``).
5. Assign the first candidate that can still be claimed, stamping the
   driver snapshot and ``estimated_pickup_time = now + ceil(km x 2) min``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.config import settings
from ridehail.domain.entities import Location
from ridehail.domain.enums import RideStatus
from ridehail.domain.matching import build_candidates, pickup_eta_minutes, rank_candidates
from ridehail.infrastructure.locks import DistributedLock
from ridehail.infrastructure.models import utcnow
from ridehail.infrastructure.repositories import DriverRepository, RideRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    ride_id: int
    status: RideStatus
    driver_id: Optional[int] = None
    distance_km: Optional[float] = None
    eta_minutes: Optional[int] = None


@dataclass(frozen=True)
class _DriverSnapshot:
    name: str
    phone: str
    lat: float
    lng: float


class RideMatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Optional[aioredis.Redis] = None,
        tie_break_ratio: float = settings.tie_break_ratio,
        minutes_per_km: float = settings.minutes_per_km,
        lock_ttl_seconds: int = settings.match_lock_ttl_seconds,
    ):
        self.session_factory = session_factory
        self.redis = redis
        self.tie_break_ratio = tie_break_ratio
        self.minutes_per_km = minutes_per_km
        self.lock_ttl_seconds = lock_ttl_seconds

    async def match(self, ride_id: int) -> Optional[MatchResult]:
        """Match one ride.  Returns the outcome, or None if nothing changed."""
        lock = None
        try:
            if self.redis is not None:
                lock = DistributedLock(
                    self.redis, f"match:{ride_id}", ttl_seconds=self.lock_ttl_seconds
                )
                if not await lock.acquire():
                    logger.info("Ride %s is already being matched – skipping", ride_id)
                    return None
            return await self._match(ride_id)
        except Exception as exc:
            logger.exception("Error matching ride %s with driver: %s", ride_id, exc)
            return None
        finally:
            if lock is not None:
                await self._release(lock, ride_id)

    # ── Internals ─────────────────────────────────────────────────────

    async def _match(self, ride_id: int) -> Optional[MatchResult]:
        async with self.session_factory() as session:
            rides = RideRepository(session)
            drivers = DriverRepository(session)

            ride = await rides.get_by_id(ride_id)
            if ride is None:
                logger.warning("Ride %s not found, skipping matching", ride_id)
                return None

            entity = ride.to_entity()
            if entity.status != RideStatus.REQUESTED:
                logger.info(
                    "Ride %s not in requested status (%s), skipping matching",
                    ride_id,
                    entity.status.value,
                )
                return None

            pickup = entity.passenger_location
            if pickup is None:
                logger.error("Passenger location not available for ride %s", ride_id)
                return None

            # 1. Available drivers
            available = await drivers.list_available()
            if not available:
                logger.info("No available drivers found for ride %s", ride_id)
                return await self._mark_no_drivers(session, rides, ride_id)

            # 2-3. Locatable candidates with distances
            candidates = build_candidates(pickup, available)
            if not candidates:
                logger.info("No drivers with valid location data for ride %s", ride_id)
                return await self._mark_no_drivers(session, rides, ride_id)

            # ORM rows expire on rollback; keep plain copies for retries
            snapshots = {
                c.driver_id: _DriverSnapshot(
                    name=c.driver.name or "Driver",
                    phone=c.driver.phone or "",
                    lat=c.driver.current_lat,
                    lng=c.driver.current_lng,
                )
                for c in candidates
            }

            # 4-5. Rank and claim
            for candidate in rank_candidates(candidates, self.tie_break_ratio):
                snap = snapshots[candidate.driver_id]
                entity.assign(candidate.driver_id, Location(snap.lat, snap.lng))
                eta = pickup_eta_minutes(candidate.distance_km, self.minutes_per_km)
                now = utcnow()

                assigned = await rides.update_if_status(
                    ride_id,
                    RideStatus.REQUESTED,
                    driver_id=candidate.driver_id,
                    driver_name=snap.name,
                    driver_phone=snap.phone,
                    driver_lat=snap.lat,
                    driver_lng=snap.lng,
                    estimated_pickup_time=now + timedelta(minutes=eta),
                    status=RideStatus.DRIVER_ASSIGNED,
                    updated_at=now,
                )
                if not assigned:
                    await session.rollback()
                    logger.info(
                        "Ride %s left requested status before assignment, nothing to do",
                        ride_id,
                    )
                    return None

                if await drivers.acquire(candidate.driver_id, ride_id):
                    await session.commit()
                    logger.info(
                        "Ride %s matched with driver %s (%.2f km, ETA %d min)",
                        ride_id,
                        candidate.driver_id,
                        candidate.distance_km,
                        eta,
                    )
                    return MatchResult(
                        ride_id=ride_id,
                        status=RideStatus.DRIVER_ASSIGNED,
                        driver_id=candidate.driver_id,
                        distance_km=candidate.distance_km,
                        eta_minutes=eta,
                    )

                await session.rollback()
                entity.status, entity.driver_id = RideStatus.REQUESTED, None
                logger.info(
                    "Driver %s was claimed by another ride, trying next candidate for ride %s",
                    candidate.driver_id,
                    ride_id,
                )

            logger.info("Every candidate for ride %s was claimed elsewhere", ride_id)
            return await self._mark_no_drivers(session, rides, ride_id)

    async def _mark_no_drivers(
        self, session: AsyncSession, rides: RideRepository, ride_id: int
    ) -> Optional[MatchResult]:
        changed = await rides.update_if_status(
            ride_id, RideStatus.REQUESTED, status=RideStatus.NO_DRIVERS
        )
        await session.commit()
        if not changed:
            return None
        return MatchResult(ride_id=ride_id, status=RideStatus.NO_DRIVERS)

    @staticmethod
    async def _release(lock: DistributedLock, ride_id: int) -> None:
        try:
            await lock.release()
        except Exception:
            logger.warning("Could not release match lock for ride %s", ride_id, exc_info=True)

