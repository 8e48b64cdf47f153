"""
Redis-backed cache store.
"""

import time
from typing import Callable, Optional

import redis.asyncio as redis

from shared.logging import get_logger

from ..models import CacheEntry
from .base import CacheStore, compute_checksum, ensure_bytes


class RedisCacheStore(CacheStore):
    """Cache entries held in Redis hashes with a key TTL."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 3600,
        *,
        prefix: str = "gitgate:cache:",
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(ttl_seconds)
        self.redis_url = redis_url
        self.prefix = prefix
        self.logger = get_logger("gitgate.cache.redis")
        self._clock = clock or time.time
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        redis_client = await self._get_redis()
        data = await redis_client.hgetall(self._make_key(key))
        if not data:
            return None

        payload = data.get(b"payload")
        checksum = data.get(b"checksum")
        expires_at = data.get(b"expires_at")
        if payload is None or checksum is None or expires_at is None:
            return None

        checksum = checksum.decode("ascii")
        expires_at = float(expires_at)
        if self._clock() >= expires_at:
            return None

        if compute_checksum(payload) != checksum:
            self.logger.error("Cache entry failed integrity check", key=key)
            return None

        return CacheEntry(key=key, payload=payload, checksum=checksum, expires_at=expires_at)

    async def set(self, key: str, data: bytes) -> None:
        data = ensure_bytes(data)
        redis_key = self._make_key(key)
        expires_at = self._clock() + self.ttl_seconds

        redis_client = await self._get_redis()
        # MULTI/EXEC so the old hash is never visible half-overwritten
        async with redis_client.pipeline(transaction=True) as pipe:
            pipe.delete(redis_key)
            pipe.hset(redis_key, mapping={
                "payload": data,
                "checksum": compute_checksum(data),
                "expires_at": repr(expires_at),
            })
            pipe.expire(redis_key, self.ttl_seconds)
            await pipe.execute()

        self.logger.debug("Cached entry", key=key, size=len(data), ttl=self.ttl_seconds)

    async def check_health(self) -> str:
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
            return "ok"
        except Exception as e:
            self.logger.error("Redis health check failed", error=str(e))
            return "error"

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
