"""FastAPI dependency injection helpers."""

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.workers.events import RideEventDispatcher
from ridehail.workers.retention import RetentionJob


async def get_db(request: Request) -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_dispatcher(request: Request) -> RideEventDispatcher:
    return request.app.state.dispatcher


def get_retention(request: Request) -> RetentionJob:
    return request.app.state.retention
