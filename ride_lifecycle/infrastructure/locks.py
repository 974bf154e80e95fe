"""
Per-ride write serialisation.

Two transitions on the same ride must never interleave.  Two backends:

* ``LocalRideLocks``  -- one ``asyncio.Lock`` per ride id; callers queue.
  Enough for a single API process.
* ``RedisRideLocks``  -- ``DistributedLock`` per ride id (SET NX EX to
  acquire, Lua check-and-delete to release).  A busy ride is reported as
  ``Conflict`` straight away; retrying is the caller's decision.

Keys are usually ride ids; any hashable key (e.g. the service's trip-id
allocation key) is serialised the same way.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Hashable

import redis.asyncio as aioredis

from ride_lifecycle.domain.errors import Conflict

logger = logging.getLogger(__name__)


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 10
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class LocalRideLocks:
    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, ride_id: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(ride_id, asyncio.Lock())
        self._holders[ride_id] += 1
        try:
            if lock.locked():
                logger.debug("Ride %s busy; waiting for lock", ride_id)
            async with lock:
                yield
        finally:
            self._holders[ride_id] -= 1
            if not self._holders[ride_id]:
                del self._holders[ride_id]
                self._locks.pop(ride_id, None)


class RedisRideLocks:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 10):
        self.redis = client
        self.ttl = ttl_seconds

    @asynccontextmanager
    async def hold(self, ride_id: Hashable) -> AsyncIterator[None]:
        lock = DistributedLock(self.redis, f"ride:{ride_id}", self.ttl)
        async with AsyncExitStack() as stack:
            try:
                await stack.enter_async_context(lock)
            except RuntimeError:
                logger.debug("Ride %s locked by another writer", ride_id)
                raise Conflict(
                    f"Ride {ride_id} is being updated by another request",
                    ride_id=ride_id if isinstance(ride_id, int) else None,
                ) from None
            yield
