"""
Inkwell Backend: Redis Cache Adapter
=====================================

What:  Thin typed wrapper over a `redis.asyncio` client.
How:   Key/value strings with optional TTL. The client is created with
       `decode_responses=True`, so values come back as `str`.
Who:   UserService caches profile lookups here; the health probe pings the
       underlying client directly.
"""

import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def create_client(url: str, max_connections: int = 20) -> redis.Redis:
    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )


class RedisCache:
    """
    get/set/delete/exists/expire/ttl over string values.

    A `ttl` of 0 or None stores the key without expiry.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            await self.client.set(key, value, ex=ttl)
        else:
            await self.client.set(key, value)

    async def delete(self, key: str) -> int:
        return await self.client.delete(key)

    async def exists(self, key: str) -> bool:
        return await self.client.exists(key) > 0

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self.client.expire(key, ttl))

    async def ttl(self, key: str) -> int:
        """Remaining seconds; -1 when the key has no expiry, -2 when absent."""
        return await self.client.ttl(key)
