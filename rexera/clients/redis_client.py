"""
Redis Client - async Redis access for rate limiting counters and health checks
"""

from typing import Optional

import redis.asyncio as redis
import structlog

from ..config import settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """
    Async Redis client.

    Handles:
    - Fixed-window counters (INCR + EXPIRE) for rate limiting
    - Connectivity checks (PING)
    """

    def __init__(self, url: Optional[str] = None, decode_responses: bool = True):
        self.url = url or settings.redis_url
        self.decode_responses = decode_responses
        self._client: Optional[redis.Redis] = None

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client"""
        if self._client is None:
            self._client = redis.from_url(
                self.url,
                decode_responses=self.decode_responses,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._client

    async def close(self) -> None:
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        client = await self._get_client()
        return bool(await client.ping())

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        """
        Count one hit in a fixed window.

        Args:
            key: Counter key
            window_seconds: Window length, applied when the key is created

        Returns:
            (hits in the current window, seconds until the window resets)

        Raises:
            redis.RedisError: Connection or command failure
        """
        client = await self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.ttl(key)
            count, ttl = await pipe.execute()

        if ttl is None or ttl < 0:
            await client.expire(key, window_seconds)
            ttl = window_seconds

        return int(count), int(ttl)


# Singleton instance
redis_client = RedisClient()
