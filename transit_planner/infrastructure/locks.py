"""
Redis-based distributed lock.

Used by the segment backfill worker so that only one API process writes
computed distances at a time.

Acquire is ``SET NX EX``; release is a Lua check-and-delete so a lock that
expired and was taken by another process is never deleted by us.
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


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, name: str, ttl_seconds: int = 60
    ):
        self.redis = client
        self.key = f"transit:lock:{name}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex
        self.held = False

    async def acquire(self) -> bool:
        """Try once.  Returns True when the lock is now ours."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> bool:
        """Release only if we still own the lock.  Returns True if deleted."""
        if not self.held:
            return False
        deleted = await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        self.held = False
        return bool(deleted)

    async def __aenter__(self) -> "DistributedLock":
        if not await self.acquire():
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
