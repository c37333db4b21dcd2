"""
Passenger endpoints
===================

POST  /api/v1/users                          -- register a passenger
GET   /api/v1/users/{user_id}                -- profile and lifetime totals
GET   /api/v1/users/{user_id}/notifications  -- notification centre
PATCH /api/v1/users/{user_id}/notifications/{notification_id}/read
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.api.dependencies import get_db
from ridehail.api.middleware import limiter
from ridehail.api.schemas import NotificationResponse, UserCreateRequest, UserResponse
from ridehail.domain.enums import RecipientRole
from ridehail.infrastructure.models import UserModel
from ridehail.infrastructure.repositories import NotificationRepository, UserRepository

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201, response_model=UserResponse, summary="Register a passenger")
@limiter.limit("100/minute")
async def create_user(
    request: Request,
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await UserRepository(db).create(UserModel(**body.model_dump()))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Email already registered")


@router.get("/{user_id}", response_model=UserResponse, summary="Get a passenger")
@limiter.limit("100/minute")
async def get_user(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get(
    "/{user_id}/notifications",
    response_model=list[NotificationResponse],
    summary="Passenger's notification centre, newest first",
)
@limiter.limit("100/minute")
async def list_user_notifications(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    if not await UserRepository(db).get_by_id(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return await NotificationRepository(db).list_for(RecipientRole.PASSENGER.value, user_id)


@router.patch(
    "/{user_id}/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a passenger notification as read",
)
@limiter.limit("100/minute")
async def mark_user_notification_read(
    request: Request,
    user_id: int,
    notification_id: int,
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationRepository(db).mark_read(
        notification_id, RecipientRole.PASSENGER.value, user_id
    )
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return notification
