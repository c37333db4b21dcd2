"""
Ride endpoints
==============

POST  /api/v1/rides                    -- request a ride (202, matching is async)
GET   /api/v1/rides                    -- ride history for a passenger or driver
GET   /api/v1/rides/{ride_id}          -- current status, driver and fare
PATCH /api/v1/rides/{ride_id}/status   -- client-driven status change
PATCH /api/v1/rides/{ride_id}/cancel   -- cancel a ride
PATCH /api/v1/rides/{ride_id}/location -- live location from either party
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.api.dependencies import get_db, get_dispatcher
from ridehail.api.middleware import limiter
from ridehail.api.schemas import (
    RideCreateRequest,
    RideLocationUpdateRequest,
    RideResponse,
    RideStatusUpdateRequest,
)
from ridehail.domain.entities import InvalidStateTransition
from ridehail.domain.enums import MATCHER_ONLY_STATUSES, RecipientRole, RideStatus
from ridehail.infrastructure.models import LocationUpdateModel, RideModel, utcnow
from ridehail.infrastructure.repositories import (
    DriverRepository,
    RetentionRepository,
    RideRepository,
    UserRepository,
)
from ridehail.workers.events import RideEventDispatcher

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=202,
    response_model=RideResponse,
    summary="Request a ride",
    responses={202: {"description": "Ride request accepted; matching is async."}},
)
@limiter.limit("100/minute")
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: RideEventDispatcher = Depends(get_dispatcher),
):
    passenger = await UserRepository(db).get_by_id(body.passenger_id)
    if not passenger:
        raise HTTPException(status_code=404, detail="Passenger not found")

    location = body.passenger_location
    ride = await RideRepository(db).create(
        RideModel(
            passenger_id=body.passenger_id,
            passenger_name=body.passenger_name or passenger.name,
            passenger_lat=location.latitude if location else None,
            passenger_lng=location.longitude if location else None,
            pickup_address=body.pickup_address,
            dropoff_address=body.dropoff_address,
            estimated_fare=body.estimated_fare,
            distance_km=body.distance_km,
            surge_factor=body.surge_factor,
            payment_method=body.payment_method,
            status=RideStatus.REQUESTED,
        )
    )
    # The matcher reads through its own session
    await db.commit()
    background_tasks.add_task(dispatcher.ride_created, ride.id)
    return RideResponse.from_model(ride)


@router.get(
    "",
    response_model=list[RideResponse],
    summary="Ride history, newest first",
)
@limiter.limit("100/minute")
async def list_rides(
    request: Request,
    passenger_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    repo = RideRepository(db)
    if passenger_id is not None:
        rides = await repo.list_for_passenger(passenger_id)
    elif driver_id is not None:
        rides = await repo.list_for_driver(driver_id)
    else:
        raise HTTPException(
            status_code=400, detail="passenger_id or driver_id is required"
        )
    return [RideResponse.from_model(r) for r in rides]


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get ride status, driver and fare",
)
@limiter.limit("100/minute")
async def get_ride(
    request: Request,
    ride_id: int,
    db: AsyncSession = Depends(get_db),
):
    ride = await RideRepository(db).get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")
    return RideResponse.from_model(ride)


@router.patch(
    "/{ride_id}/status",
    response_model=RideResponse,
    summary="Move a ride to its next status",
    description=(
        "Driver / passenger side transitions (driver_arrived, in_progress, "
        "completed, cancelled). Assignment is reserved to the matcher."
    ),
)
@limiter.limit("100/minute")
async def update_ride_status(
    request: Request,
    ride_id: int,
    body: RideStatusUpdateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: RideEventDispatcher = Depends(get_dispatcher),
):
    return await _change_status(
        db, dispatcher, background_tasks, ride_id, body.status, body.distance_km
    )


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideResponse,
    summary="Cancel a ride",
    description=(
        "Cancels a ride that has not finished yet. "
        "If a driver was assigned, the driver becomes available again."
    ),
)
@limiter.limit("100/minute")
async def cancel_ride(
    request: Request,
    ride_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: RideEventDispatcher = Depends(get_dispatcher),
):
    return await _change_status(
        db, dispatcher, background_tasks, ride_id, RideStatus.CANCELLED
    )


@router.patch(
    "/{ride_id}/location",
    response_model=RideResponse,
    summary="Push a live location update for the passenger or the driver",
)
@limiter.limit("100/minute")
async def update_ride_location(
    request: Request,
    ride_id: int,
    body: RideLocationUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    ride = await RideRepository(db).get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")

    lat, lng = body.location.latitude, body.location.longitude
    if body.role == RecipientRole.PASSENGER.value:
        if body.user_id != ride.passenger_id:
            raise HTTPException(status_code=403, detail="Not this ride's passenger")
        ride.passenger_lat, ride.passenger_lng = lat, lng
    else:
        if body.user_id != ride.driver_id:
            raise HTTPException(status_code=403, detail="Not this ride's driver")
        ride.driver_lat, ride.driver_lng = lat, lng
        driver = await DriverRepository(db).get_by_id(body.user_id)
        if driver:
            driver.current_lat, driver.current_lng = lat, lng
    ride.updated_at = utcnow()

    await RetentionRepository(db).add_location_update(
        LocationUpdateModel(
            user_id=body.user_id,
            user_role=body.role,
            ride_id=ride_id,
            latitude=lat,
            longitude=lng,
        )
    )
    return RideResponse.from_model(ride)


# ── Helpers ───────────────────────────────────────────────────────────


async def _change_status(
    db: AsyncSession,
    dispatcher: RideEventDispatcher,
    background_tasks: BackgroundTasks,
    ride_id: int,
    new_status: RideStatus,
    distance_km: Optional[float] = None,
) -> RideResponse:
    rides = RideRepository(db)
    ride = await rides.get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")

    if new_status in MATCHER_ONLY_STATUSES:
        raise HTTPException(
            status_code=409,
            detail=f"Status {new_status.value} is set by the matcher only",
        )

    entity = ride.to_entity()
    before, driver_id = entity.status, entity.driver_id
    try:
        entity.transition_to(new_status)
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    now = utcnow()
    values: dict = {"status": new_status, "updated_at": now}
    if new_status == RideStatus.IN_PROGRESS:
        values["start_time"] = now
    elif new_status == RideStatus.COMPLETED:
        values["end_time"] = now
        if distance_km is not None:
            values["distance_km"] = distance_km
    elif new_status == RideStatus.CANCELLED:
        values["driver_id"] = None

    # Keyed on the status we validated against
    if not await rides.update_if_status(ride_id, before, **values):
        raise HTTPException(
            status_code=409, detail="Ride status changed concurrently, retry"
        )

    if new_status in (RideStatus.COMPLETED, RideStatus.CANCELLED) and driver_id:
        await DriverRepository(db).release(driver_id, ride_id)

    await db.commit()
    await db.refresh(ride)
    background_tasks.add_task(
        dispatcher.ride_status_changed, ride_id, before, new_status, driver_id=driver_id
    )
    return RideResponse.from_model(ride)
