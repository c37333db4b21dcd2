"""
Driver endpoints
================

POST  /api/v1/drivers                        -- onboard a driver (pending approval)
GET   /api/v1/drivers/{driver_id}            -- profile, availability, location
PATCH /api/v1/drivers/{driver_id}/availability -- go online / offline
PATCH /api/v1/drivers/{driver_id}/location   -- live location
PATCH /api/v1/drivers/{driver_id}/status     -- admin approval / suspension
GET   /api/v1/drivers/{driver_id}/notifications
PATCH /api/v1/drivers/{driver_id}/notifications/{notification_id}/read
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.api.dependencies import get_db
from ridehail.api.middleware import limiter
from ridehail.api.schemas import (
    DriverAvailabilityRequest,
    DriverCreateRequest,
    DriverResponse,
    DriverStatusRequest,
    LocationSchema,
    NotificationResponse,
)
from ridehail.domain.entities import DriverUnavailable
from ridehail.domain.enums import DriverStatus, RecipientRole
from ridehail.infrastructure.models import DriverModel, LocationUpdateModel, utcnow
from ridehail.infrastructure.repositories import (
    DriverRepository,
    NotificationRepository,
    RetentionRepository,
    RideRepository,
)

router = APIRouter(prefix="/drivers", tags=["drivers"])


async def _get_driver(db: AsyncSession, driver_id: int) -> DriverModel:
    driver = await DriverRepository(db).get_by_id(driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


@router.post(
    "",
    status_code=201,
    response_model=DriverResponse,
    summary="Onboard a driver",
)
@limiter.limit("100/minute")
async def create_driver(
    request: Request,
    body: DriverCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    driver = await DriverRepository(db).create(
        DriverModel(
            name=body.name,
            phone=body.phone,
            fcm_token=body.fcm_token,
            status=DriverStatus.PENDING,
            is_available=False,
            current_lat=body.location.latitude if body.location else None,
            current_lng=body.location.longitude if body.location else None,
        )
    )
    return DriverResponse.from_model(driver)


@router.get("/{driver_id}", response_model=DriverResponse, summary="Get a driver")
@limiter.limit("100/minute")
async def get_driver(
    request: Request,
    driver_id: int,
    db: AsyncSession = Depends(get_db),
):
    return DriverResponse.from_model(await _get_driver(db, driver_id))


@router.patch(
    "/{driver_id}/availability",
    response_model=DriverResponse,
    summary="Go online or offline",
    description=(
        "Only active drivers without a current ride can go online. "
        "Going offline never touches an ongoing ride."
    ),
)
@limiter.limit("100/minute")
async def set_availability(
    request: Request,
    driver_id: int,
    body: DriverAvailabilityRequest,
    db: AsyncSession = Depends(get_db),
):
    driver = await _get_driver(db, driver_id)
    entity = driver.to_entity()
    try:
        if body.is_available:
            entity.go_online()
        else:
            entity.go_offline()
    except DriverUnavailable as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    repo = DriverRepository(db)
    if entity.is_available:
        if not await repo.set_online(driver_id):
            raise HTTPException(
                status_code=409, detail="Driver was assigned a ride concurrently"
            )
    else:
        await repo.set_offline(driver_id)
    await db.refresh(driver)
    return DriverResponse.from_model(driver)


@router.patch(
    "/{driver_id}/location",
    response_model=DriverResponse,
    summary="Update the driver's live location",
)
@limiter.limit("100/minute")
async def update_location(
    request: Request,
    driver_id: int,
    body: LocationSchema,
    db: AsyncSession = Depends(get_db),
):
    driver = await _get_driver(db, driver_id)
    driver.current_lat, driver.current_lng = body.latitude, body.longitude
    driver.updated_at = utcnow()

    # Mirror onto the ride the passenger is watching
    if driver.current_ride_id is not None:
        await RideRepository(db).update(
            driver.current_ride_id, driver_lat=body.latitude, driver_lng=body.longitude
        )

    await RetentionRepository(db).add_location_update(
        LocationUpdateModel(
            user_id=driver_id,
            user_role=RecipientRole.DRIVER.value,
            ride_id=driver.current_ride_id,
            latitude=body.latitude,
            longitude=body.longitude,
        )
    )
    return DriverResponse.from_model(driver)


@router.patch(
    "/{driver_id}/status",
    response_model=DriverResponse,
    summary="Approve, reject or deactivate a driver",
)
@limiter.limit("100/minute")
async def set_driver_status(
    request: Request,
    driver_id: int,
    body: DriverStatusRequest,
    db: AsyncSession = Depends(get_db),
):
    driver = await _get_driver(db, driver_id)
    driver.status = body.status
    if body.status != DriverStatus.ACTIVE:
        driver.is_available = False
    driver.updated_at = utcnow()
    return DriverResponse.from_model(driver)


@router.get(
    "/{driver_id}/notifications",
    response_model=list[NotificationResponse],
    summary="Driver's notification centre, newest first",
)
@limiter.limit("100/minute")
async def list_driver_notifications(
    request: Request,
    driver_id: int,
    db: AsyncSession = Depends(get_db),
):
    await _get_driver(db, driver_id)
    return await NotificationRepository(db).list_for(RecipientRole.DRIVER.value, driver_id)


@router.patch(
    "/{driver_id}/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a driver notification as read",
)
@limiter.limit("100/minute")
async def mark_driver_notification_read(
    request: Request,
    driver_id: int,
    notification_id: int,
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationRepository(db).mark_read(
        notification_id, RecipientRole.DRIVER.value, driver_id
    )
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return notification
