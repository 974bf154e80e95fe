"""FastAPI dependency injection helpers."""

from typing import Optional

from ride_lifecycle.config import settings
from ride_lifecycle.infrastructure.database import async_session_factory
from ride_lifecycle.infrastructure.redis_client import build_ride_locks
from ride_lifecycle.services.rides import RideService

_service: Optional[RideService] = None


def get_ride_service() -> RideService:
    """Process-wide service; one lock registry must be shared by all requests."""
    global _service
    if _service is None:
        _service = RideService(
            async_session_factory,
            build_ride_locks(),
            conflict_tolerance=settings.conflict_tolerance,
            clear_history_on_rollback=settings.rollback_clears_history,
            tz=settings.tz,
            trip_id_width=settings.trip_id_width,
        )
    return _service
