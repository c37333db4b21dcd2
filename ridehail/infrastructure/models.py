"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``             -- registered passengers
* ``drivers``           -- drivers with availability and live location
* ``rides``             -- one trip from request to settlement
* ``notifications``     -- in-app notification centre
* ``transactions``      -- settled ride payments
* ``platform_earnings`` -- running commission total (single row)
* ``archived_rides``    -- JSON snapshots written by the retention job
* ``location_updates``  -- ephemeral live-location history
* ``reports``           -- monthly ride statistics

Indexes
-------
* **B-Tree** on ``(status, is_available)`` for the matcher's driver scan.
* **B-Tree** on ride ``status``, ``passenger_id``, ``driver_id`` and
  ``created_at`` for history queries and retention sweeps.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from .database import Base
from ridehail.domain.entities import Driver, Location, Ride
from ridehail.domain.enums import DriverStatus, RideStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(cls):
    # Store the lowercase values ("driver_assigned"), not member names
    return Enum(cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(32), nullable=True)
    fcm_token = Column(String(255), nullable=True)
    default_payment_method = Column(String(64), nullable=True)
    total_rides = Column(Integer, default=0, nullable=False)
    total_spent = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    status = Column(_enum(DriverStatus), default=DriverStatus.PENDING, nullable=False)
    is_available = Column(Boolean, default=False, nullable=False)
    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)
    current_ride_id = Column(Integer, nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    fcm_token = Column(String(255), nullable=True)
    earnings = Column(Float, default=0.0, nullable=False)
    total_rides = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_drivers_matchable", "status", "is_available"),
    )

    def to_entity(self) -> Driver:
        return Driver(
            id=self.id,
            name=self.name,
            phone=self.phone or "",
            status=DriverStatus(self.status),
            is_available=self.is_available,
            current_lat=self.current_lat,
            current_lng=self.current_lng,
            current_ride_id=self.current_ride_id,
            rating=self.rating or 0.0,
        )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    passenger_name = Column(String(120), nullable=True)

    passenger_lat = Column(Float, nullable=True)
    passenger_lng = Column(Float, nullable=True)
    pickup_address = Column(String(255), nullable=True)
    dropoff_address = Column(String(255), nullable=True)

    status = Column(_enum(RideStatus), default=RideStatus.REQUESTED, nullable=False)

    # Denormalised driver snapshot written by the matcher
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    driver_name = Column(String(120), nullable=True)
    driver_phone = Column(String(32), nullable=True)
    driver_lat = Column(Float, nullable=True)
    driver_lng = Column(Float, nullable=True)
    estimated_pickup_time = Column(DateTime(timezone=True), nullable=True)

    # Fare inputs
    estimated_fare = Column(Float, nullable=True)
    distance_km = Column(Float, nullable=True)
    base_fare = Column(Float, nullable=True)
    per_minute_rate = Column(Float, nullable=True)
    per_km_rate = Column(Float, nullable=True)
    surge_factor = Column(Float, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)

    # Settlement
    fare = Column(Float, nullable=True)
    payment_method = Column(String(64), nullable=True)
    payment_status = Column(String(20), nullable=True)
    payment_error = Column(String(255), nullable=True)
    transaction_id = Column(String(64), nullable=True)

    archived = Column(Boolean, default=False, nullable=False)
    requested_at = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_passenger", "passenger_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_created", "created_at", "archived"),
    )

    def to_entity(self) -> Ride:
        return Ride(
            id=self.id,
            passenger_id=self.passenger_id,
            passenger_location=Location.maybe(self.passenger_lat, self.passenger_lng),
            status=RideStatus(self.status),
            driver_id=self.driver_id,
            driver_location=Location.maybe(self.driver_lat, self.driver_lng),
            fare=self.fare,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False)
    recipient_role = Column(String(16), nullable=False)
    title = Column(String(120), nullable=False)
    message = Column(String(500), nullable=False)
    ride_id = Column(Integer, nullable=True)
    status = Column(String(32), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_role", "recipient_id"),
        Index("idx_notifications_created", "created_at"),
    )


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(64), unique=True, nullable=False)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    passenger_id = Column(Integer, nullable=False)
    driver_id = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False)
    payment_method = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False)
    type = Column(String(32), default="ride_payment", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class PlatformEarningsModel(Base):
    __tablename__ = "platform_earnings"

    id = Column(Integer, primary_key=True)
    total = Column(Float, default=0.0, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ArchivedRideModel(Base):
    __tablename__ = "archived_rides"

    ride_id = Column(Integer, primary_key=True)
    snapshot = Column(JSON, nullable=False)
    archived_at = Column(DateTime(timezone=True), default=utcnow)


class LocationUpdateModel(Base):
    __tablename__ = "location_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    user_role = Column(String(16), nullable=False)
    ride_id = Column(Integer, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_location_updates_ts", "timestamp"),)


class ReportModel(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    total_rides = Column(Integer, default=0, nullable=False)
    completed_rides = Column(Integer, default=0, nullable=False)
    cancelled_rides = Column(Integer, default=0, nullable=False)
    total_revenue = Column(Float, default=0.0, nullable=False)
    total_distance = Column(Float, default=0.0, nullable=False)
    completion_rate = Column(Float, default=0.0, nullable=False)
    average_fare = Column(Float, default=0.0, nullable=False)
    average_distance = Column(Float, default=0.0, nullable=False)
    generated_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (UniqueConstraint("year", "month", name="uq_reports_month"),)
