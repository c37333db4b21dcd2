"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ridehail.domain.enums import DriverStatus, RideStatus


class LocationSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


def _location(lat, lng) -> Optional[LocationSchema]:
    if lat is None or lng is None:
        return None
    return LocationSchema(latitude=lat, longitude=lng)


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    passenger_id: int
    passenger_name: Optional[str] = Field(None, max_length=120)
    passenger_location: Optional[LocationSchema] = None
    pickup_address: Optional[str] = Field(None, max_length=255)
    dropoff_address: Optional[str] = Field(None, max_length=255)
    estimated_fare: Optional[float] = Field(None, ge=0)
    distance_km: Optional[float] = Field(None, ge=0)
    surge_factor: Optional[float] = Field(None, ge=1)
    payment_method: Optional[str] = Field(None, max_length=64)


class RideStatusUpdateRequest(BaseModel):
    status: RideStatus
    distance_km: Optional[float] = Field(
        None, ge=0, description="Actual trip distance, used when settling the fare."
    )


class RideLocationUpdateRequest(BaseModel):
    role: Literal["passenger", "driver"]
    user_id: int
    location: LocationSchema


class DriverCreateRequest(BaseModel):
    name: str = Field(..., max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    fcm_token: Optional[str] = Field(None, max_length=255)
    location: Optional[LocationSchema] = None


class DriverAvailabilityRequest(BaseModel):
    is_available: bool


class DriverStatusRequest(BaseModel):
    status: DriverStatus


class UserCreateRequest(BaseModel):
    name: str = Field(..., max_length=120)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    fcm_token: Optional[str] = Field(None, max_length=255)
    default_payment_method: Optional[str] = Field(None, max_length=64)


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: int
    passenger_id: int
    passenger_name: Optional[str] = None
    passenger_location: Optional[LocationSchema] = None
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    status: RideStatus
    driver_id: Optional[int] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    driver_location: Optional[LocationSchema] = None
    estimated_pickup_time: Optional[datetime] = None
    estimated_fare: Optional[float] = None
    distance_km: Optional[float] = None
    fare: Optional[float] = None
    payment_status: Optional[str] = None
    transaction_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, ride) -> "RideResponse":
        return cls(
            id=ride.id,
            passenger_id=ride.passenger_id,
            passenger_name=ride.passenger_name,
            passenger_location=_location(ride.passenger_lat, ride.passenger_lng),
            pickup_address=ride.pickup_address,
            dropoff_address=ride.dropoff_address,
            status=ride.status,
            driver_id=ride.driver_id,
            driver_name=ride.driver_name,
            driver_phone=ride.driver_phone,
            driver_location=_location(ride.driver_lat, ride.driver_lng),
            estimated_pickup_time=ride.estimated_pickup_time,
            estimated_fare=ride.estimated_fare,
            distance_km=ride.distance_km,
            fare=ride.fare,
            payment_status=ride.payment_status,
            transaction_id=ride.transaction_id,
            start_time=ride.start_time,
            end_time=ride.end_time,
            created_at=ride.created_at,
            updated_at=ride.updated_at,
        )


class DriverResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    status: DriverStatus
    is_available: bool
    current_location: Optional[LocationSchema] = None
    current_ride_id: Optional[int] = None
    rating: float = 0.0
    earnings: float = 0.0
    total_rides: int = 0

    @classmethod
    def from_model(cls, driver) -> "DriverResponse":
        return cls(
            id=driver.id,
            name=driver.name,
            phone=driver.phone,
            status=driver.status,
            is_available=driver.is_available,
            current_location=_location(driver.current_lat, driver.current_lng),
            current_ride_id=driver.current_ride_id,
            rating=driver.rating or 0.0,
            earnings=driver.earnings or 0.0,
            total_rides=driver.total_rides or 0,
        )


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    default_payment_method: Optional[str] = None
    total_rides: int = 0
    total_spent: float = 0.0

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    ride_id: Optional[int] = None
    status: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RetentionResponse(BaseModel):
    archived_rides: int
    deleted_location_updates: int
    deleted_notifications: int
    report: Optional[str] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"

