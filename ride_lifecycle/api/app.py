"""
FastAPI application factory.

* Registers routes for rides and admin.
* Maps domain errors to HTTP responses (404 / 409 / 422).
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ride_lifecycle.api.middleware import limiter
from ride_lifecycle.api.routes import admin, rides
from ride_lifecycle.config import settings
from ride_lifecycle.domain.errors import RideError
from ride_lifecycle.infrastructure.database import engine

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "not_found": 404,
    "conflict": 409,
    "invalid_transition": 409,
    "invalid_mileage": 422,
    "missing_driver": 422,
}


async def _ride_error_handler(request: Request, exc: RideError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 400), content=exc.as_dict()
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Dispose of pooled connections on shutdown."""
    logger.info(
        "Ride lifecycle API starting (locks=%s, rollback clears history=%s)",
        settings.ride_lock_backend,
        settings.rollback_clears_history,
    )
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Lifecycle API",
        description=(
            "Drives rides through pickup and dropoff, records odometer "
            "readings per leg, links outbound and return rides and sorts "
            "ride lists for dashboards."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RideError, _ride_error_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
