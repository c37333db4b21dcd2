"""
Redis-based distributed lock.

Two users:

* the matcher takes ``lock:match:<ride_id>`` so a duplicated ride-created
  event that arrives while the first delivery is still running is dropped;
* the retention job takes ``lock:retention`` so only one API process
  sweeps old data per interval.

The lock only suppresses duplicate work.  Correctness of the ride / driver
hand-off comes from the conditional writes in the repositories, so an
expired lock never leads to double assignment.

SET NX EX acquires; a Lua script does the atomic check-and-delete on
release so a slow holder never frees a lock someone else re-acquired.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    pass


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())
        self.held = False

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> None:
        if not self.held:
            return
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        self.held = False

    async def __aenter__(self):
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
