"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  State changes that race with other
writers are issued as conditional ``UPDATE ... WHERE`` statements and
report whether they took effect, so callers can treat a lost race as a
no-op instead of overwriting someone else's write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    ArchivedRideModel,
    DriverModel,
    LocationUpdateModel,
    NotificationModel,
    PlatformEarningsModel,
    ReportModel,
    RideModel,
    TransactionModel,
    UserModel,
    utcnow,
)
from ridehail.domain.enums import DriverStatus, RideStatus

PLATFORM_EARNINGS_ROW = 1


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def list_for_passenger(self, passenger_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.passenger_id == passenger_id)
            .order_by(RideModel.requested_at.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_driver(self, driver_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.driver_id == driver_id)
            .order_by(RideModel.requested_at.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_status(self, status: RideStatus) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status == status)
            .order_by(RideModel.requested_at.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def update_if_status(
        self, ride_id: int, expected: RideStatus, **values: Any
    ) -> bool:
        """Write *values* only while the ride is still in *expected* status."""
        values.setdefault("updated_at", utcnow())
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update(self, ride_id: int, **values: Any) -> None:
        values.setdefault("updated_at", utcnow())
        await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def get_archivable(self, cutoff: datetime, limit: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.created_at < cutoff, RideModel.archived.is_(False))
            .order_by(RideModel.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_created_between(
        self, start: datetime, end: datetime
    ) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(
                RideModel.created_at >= start, RideModel.created_at < end
            )
        )
        return list(result.scalars().all())


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def list_available(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(
                DriverModel.status == DriverStatus.ACTIVE,
                DriverModel.is_available.is_(True),
            )
            .order_by(DriverModel.id)
        )
        return list(result.scalars().all())

    async def acquire(self, driver_id: int, ride_id: int) -> bool:
        """Claim an available driver for *ride_id* (compare-and-swap)."""
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.status == DriverStatus.ACTIVE,
                DriverModel.is_available.is_(True),
                DriverModel.current_ride_id.is_(None),
            )
            .values(is_available=False, current_ride_id=ride_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_online(self, driver_id: int) -> bool:
        """Mark available, unless a ride was acquired in the meantime."""
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.status == DriverStatus.ACTIVE,
                DriverModel.current_ride_id.is_(None),
            )
            .values(is_available=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_offline(self, driver_id: int) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(is_available=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def release(self, driver_id: int, ride_id: int) -> bool:
        """Free a driver, but only if they are still bound to *ride_id*."""
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.current_ride_id == ride_id,
            )
            .values(is_available=True, current_ride_id=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def credit(self, driver_id: int, earnings: float) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(
                earnings=DriverModel.earnings + earnings,
                total_rides=DriverModel.total_rides + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def record_ride(self, user_id: int, amount: float) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                total_rides=UserModel.total_rides + 1,
                total_spent=UserModel.total_spent + amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, notification: NotificationModel) -> NotificationModel:
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def list_for(self, role: str, recipient_id: int) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(
                NotificationModel.recipient_role == role,
                NotificationModel.recipient_id == recipient_id,
            )
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        return list(result.scalars().all())

    async def mark_read(
        self, notification_id: int, role: str, recipient_id: int
    ) -> Optional[NotificationModel]:
        """Mark one notification read.  None unless it belongs to the recipient."""
        notification = await self.session.get(NotificationModel, notification_id)
        if (
            notification is None
            or notification.recipient_role != role
            or notification.recipient_id != recipient_id
        ):
            return None
        notification.read = True
        await self.session.flush()
        return notification

    async def delete_read_older_than(self, cutoff: datetime, limit: int) -> int:
        ids = select(NotificationModel.id).where(
            NotificationModel.created_at < cutoff,
            NotificationModel.read.is_(True),
        ).limit(limit)
        result = await self.session.execute(
            delete(NotificationModel)
            .where(NotificationModel.id.in_(ids.scalar_subquery()))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class PaymentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_transaction(self, txn: TransactionModel) -> TransactionModel:
        self.session.add(txn)
        await self.session.flush()
        return txn

    async def add_platform_earnings(self, amount: float) -> None:
        row = await self.session.get(PlatformEarningsModel, PLATFORM_EARNINGS_ROW)
        if row is None:
            self.session.add(PlatformEarningsModel(id=PLATFORM_EARNINGS_ROW, total=amount))
        else:
            row.total = row.total + amount
        await self.session.flush()


class RetentionRepository:
    """Archive snapshots, ephemeral location history and monthly reports."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def archive(self, ride_id: int, snapshot: dict) -> None:
        self.session.add(ArchivedRideModel(ride_id=ride_id, snapshot=snapshot))
        await self.session.flush()

    async def add_location_update(self, update_: LocationUpdateModel) -> None:
        self.session.add(update_)
        await self.session.flush()

    async def delete_location_updates_before(self, cutoff: datetime, limit: int) -> int:
        ids = select(LocationUpdateModel.id).where(
            LocationUpdateModel.timestamp < cutoff
        ).limit(limit)
        result = await self.session.execute(
            delete(LocationUpdateModel)
            .where(LocationUpdateModel.id.in_(ids.scalar_subquery()))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_report(self, year: int, month: int) -> Optional[ReportModel]:
        result = await self.session.execute(
            select(ReportModel).where(ReportModel.year == year, ReportModel.month == month)
        )
        return result.scalar_one_or_none()

    async def save_report(self, report: ReportModel) -> ReportModel:
        self.session.add(report)
        await self.session.flush()
        return report
