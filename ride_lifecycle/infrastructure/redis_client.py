"""Redis async connection pool."""

import redis.asyncio as aioredis

from ride_lifecycle.config import settings
from ride_lifecycle.infrastructure.locks import LocalRideLocks, RedisRideLocks

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


def build_ride_locks():
    """Lock backend selected by ``settings.ride_lock_backend``."""
    if settings.ride_lock_backend == "redis":
        return RedisRideLocks(get_redis(), settings.ride_lock_ttl_seconds)
    return LocalRideLocks()
