"""
Redis service backing the setting read cache.

This module handles all Redis operations for cached setting rows.
It also provides a fallback to fakeredis for local development.
"""

import redis.asyncio as redis
from redis.asyncio import Redis
from typing import Optional
import fakeredis.aioredis

from appsettings.core.config import get_config
from appsettings.core.logging import get_logger

logger = get_logger(__name__)

class RedisService:
    """
    Async Redis client wrapper for cached setting values.

    Key format: {prefix}:{part}:{part}...
    """

    def __init__(self):
        self._client: Optional[Redis] = None
        self._config = get_config()

    async def connect(self) -> None:
        """
        Initialize Redis Connection.

        Called once at application startup.
        """

        try:
            self._client = redis.from_url(
                self._config.redis_url,
                encoding="utf-8",
                decode_responses=True, # Return strings, not bytes
            )

            # Test the connection
            await self._client.ping()
            logger.info("redis_connected", url=self._config.redis_url)
        except redis.ConnectionError:
            if self._config.settings_mode != "local":
                raise
            logger.warning("redis_unavailable", fallback="fakeredis")
            # Fall back to fakeredis for local development
            self._client = fakeredis.aioredis.FakeRedis(
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        """
        Close Redis connection.
        """
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        return await self._client.ping()

    def make_key(self, *parts: str) -> str:
        """
        Create a namespaced Redis key.

        Format: {prefix}:{part}:{part}
        """
        return ":".join((self._config.cache_prefix, *parts))

    async def get(self, key: str) -> Optional[str]:
        """Cached string, or None on a miss."""
        return await self._client.get(key)

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """
        Store a string, forever when ttl_seconds is None.
        """
        if ttl_seconds is None:
            await self._client.set(key, value)
        else:
            # SETEX: SET with Expiry - atomic operation
            await self._client.setex(key, ttl_seconds, value)

    async def forget(self, *keys: str) -> int:
        """Delete keys. Returns how many existed."""
        if not keys:
            return 0
        return await self._client.delete(*keys)

# Singleton instance
redis_service = RedisService()
