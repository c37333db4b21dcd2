"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/rides?status=   -- rides in a given status (default requested)
POST /api/v1/admin/retention/run   -- run one retention cycle now
GET  /api/v1/admin/health          -- simple health check
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.api.dependencies import get_db, get_retention
from ridehail.api.middleware import limiter
from ridehail.api.schemas import HealthResponse, RetentionResponse, RideResponse
from ridehail.domain.enums import RideStatus
from ridehail.infrastructure.repositories import RideRepository
from ridehail.workers.retention import RetentionJob

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rides",
    response_model=list[RideResponse],
    summary="List rides by status",
)
@limiter.limit("100/minute")
async def list_rides_by_status(
    request: Request,
    status: RideStatus = RideStatus.REQUESTED,
    db: AsyncSession = Depends(get_db),
):
    rides = await RideRepository(db).list_by_status(status)
    return [RideResponse.from_model(r) for r in rides]


@router.post(
    "/retention/run",
    response_model=RetentionResponse,
    summary="Archive old rides and purge stale location / notification data",
)
@limiter.limit("10/minute")
async def run_retention(
    request: Request,
    retention: RetentionJob = Depends(get_retention),
):
    summary = await retention.run_once()
    if summary is None:
        raise HTTPException(status_code=409, detail="Retention already running")
    return summary


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
