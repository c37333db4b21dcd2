"""
Background Retention Worker
===========================

Runs every ``RETENTION_INTERVAL_SECONDS`` (default 24 h).

Each cycle, in bounded batches so one run never holds the database for
long:

1. Archive rides older than ``RIDE_ARCHIVE_DAYS`` -- a JSON snapshot goes
   to ``archived_rides`` and the ride is flagged ``archived``.
2. Delete live-location history older than ``LOCATION_RETENTION_DAYS``.
3. Delete read notifications older than ``NOTIFICATION_RETENTION_DAYS``;
   unread ones stay until the recipient has seen them.
4. On the first day of a month, write the previous month's report.

A Redis lock makes sure only one process runs the cycle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.config import settings
from ridehail.domain.enums import RideStatus
from ridehail.infrastructure.locks import DistributedLock
from ridehail.infrastructure.models import ReportModel, RideModel, utcnow
from ridehail.infrastructure.repositories import (
    NotificationRepository,
    RetentionRepository,
    RideRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class RetentionSummary:
    archived_rides: int = 0
    deleted_location_updates: int = 0
    deleted_notifications: int = 0
    report: Optional[str] = None


def ride_snapshot(ride: RideModel) -> dict:
    """Column values of *ride*, JSON-safe."""
    snapshot = {}
    for column in RideModel.__table__.columns:
        value = getattr(ride, column.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif hasattr(value, "value"):
            value = value.value
        snapshot[column.key] = value
    return snapshot


def previous_month(today: date) -> tuple[int, int]:
    first = today.replace(day=1)
    last_month = first - timedelta(days=1)
    return last_month.year, last_month.month


class RetentionJob:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Optional[aioredis.Redis] = None,
        interval_seconds: int = settings.retention_interval_seconds,
    ):
        self.session_factory = session_factory
        self.redis = redis
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    # ── Public API ────────────────────────────────────────────────────

    async def start(self) -> None:
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info("Retention worker started (interval=%ds)", self.interval_seconds)

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Retention worker stopped")

    async def run_once(self, now: Optional[datetime] = None) -> Optional[RetentionSummary]:
        """Execute one cycle.  Returns None when another process holds the lock."""
        lock = None
        if self.redis is not None:
            lock = DistributedLock(self.redis, "retention", ttl_seconds=600)
            if not await lock.acquire():
                logger.debug("Lock held by another worker – skipping cycle")
                return None
        try:
            return await self._cycle(now or utcnow())
        finally:
            if lock is not None:
                await lock.release()

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: run a retention cycle then sleep."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Unhandled error in retention cycle")
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass  # next cycle

    async def _cycle(self, now: datetime) -> RetentionSummary:
        archive_cutoff = now - timedelta(days=settings.ride_archive_days)
        location_cutoff = now - timedelta(days=settings.location_retention_days)
        notification_cutoff = now - timedelta(days=settings.notification_retention_days)
        batch = settings.retention_batch_size
        logger.info(
            "Running cleanup (archive < %s, locations < %s, notifications < %s)",
            archive_cutoff.isoformat(),
            location_cutoff.isoformat(),
            notification_cutoff.isoformat(),
        )

        summary = RetentionSummary()
        async with self.session_factory() as session:
            rides = RideRepository(session)
            retention = RetentionRepository(session)

            # 1. Archive old rides
            for ride in await rides.get_archivable(archive_cutoff, batch):
                await retention.archive(ride.id, ride_snapshot(ride))
                ride.archived = True
                ride.updated_at = now
                summary.archived_rides += 1
            await session.commit()
            logger.info("Archived %d rides", summary.archived_rides)

            # 2. Ephemeral location history
            summary.deleted_location_updates = (
                await retention.delete_location_updates_before(location_cutoff, batch)
            )
            # 3. Notification centre
            summary.deleted_notifications = await NotificationRepository(
                session
            ).delete_read_older_than(notification_cutoff, batch)
            await session.commit()
            logger.info(
                "Deleted %d location updates and %d notifications",
                summary.deleted_location_updates,
                summary.deleted_notifications,
            )

            # 4. Monthly report
            if now.day == 1:
                year, month = previous_month(now.date())
                report = await self._monthly_report(session, year, month)
                await session.commit()
                summary.report = f"{year}_{month}"
                logger.info(
                    "Monthly report generated for %s: %d rides, %d completed, revenue %.2f",
                    summary.report,
                    report.total_rides,
                    report.completed_rides,
                    report.total_revenue,
                )

        return summary

    async def _monthly_report(
        self, session: AsyncSession, year: int, month: int
    ) -> ReportModel:
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = datetime(year + (month == 12), month % 12 + 1, 1, tzinfo=timezone.utc)
        rides = await RideRepository(session).get_created_between(start, end)

        total = completed = cancelled = 0
        revenue = distance = 0.0
        for ride in rides:
            total += 1
            if ride.status == RideStatus.COMPLETED:
                completed += 1
                revenue += ride.fare or 0
                distance += ride.distance_km or 0
            elif ride.status == RideStatus.CANCELLED:
                cancelled += 1

        retention = RetentionRepository(session)
        report = await retention.get_report(year, month)
        if report is None:
            report = ReportModel(year=year, month=month)
        report.total_rides = total
        report.completed_rides = completed
        report.cancelled_rides = cancelled
        report.total_revenue = revenue
        report.total_distance = distance
        report.completion_rate = completed / total * 100 if total else 0.0
        report.average_fare = revenue / completed if completed else 0.0
        report.average_distance = distance / completed if completed else 0.0
        report.generated_at = utcnow()
        return await retention.save_report(report)
