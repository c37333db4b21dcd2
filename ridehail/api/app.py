"""
FastAPI application factory.

* Registers routes for rides, drivers, users and admin.
* Builds the backend clients (database engine, Redis, push gateway) once
  in the lifespan and wires them into the ride event dispatcher.
* Starts / stops the background retention worker.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridehail.api.middleware import limiter
from ridehail.api.routes import admin, drivers, rides, users
from ridehail.config import settings
from ridehail.infrastructure.database import build_engine, build_session_factory
from ridehail.infrastructure.push import PushGateway
from ridehail.infrastructure.redis_client import create_redis
from ridehail.workers.events import RideEventDispatcher
from ridehail.workers.matcher import RideMatcher
from ridehail.workers.notifier import RideNotifier
from ridehail.workers.retention import RetentionJob
from ridehail.workers.settlement import PaymentSettlement

logging.basicConfig(level=settings.log_level)


def build_dispatcher(session_factory, redis, push: PushGateway) -> RideEventDispatcher:
    return RideEventDispatcher(
        matcher=RideMatcher(session_factory, redis),
        notifier=RideNotifier(session_factory, push),
        settlement=PaymentSettlement(session_factory),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create backend clients on startup; release them on shutdown."""
    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    redis = create_redis(settings.redis_url)
    push = PushGateway(settings.push_gateway_url, timeout=settings.push_timeout_seconds)

    app.state.session_factory = session_factory
    app.state.dispatcher = build_dispatcher(session_factory, redis, push)
    app.state.retention = RetentionJob(session_factory, redis)

    await app.state.retention.start()
    yield
    await app.state.retention.stop()

    await push.aclose()
    await redis.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Hailing Matching API",
        description=(
            "Matches ride requests to the best nearby driver, tracks the "
            "ride lifecycle, notifies both parties and settles payment "
            "when a ride completes."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
