"""
Redis storage backends for the token cache.
"""

import json
from typing import Dict, Any, Optional, List

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import MalformedCacheRecordError
from .models import CACHE_KEY_PREFIX, CACHE_KEY_DELIMITER


class RedisCache:
    """Asynchronous Redis backend without key enumeration.

    Records are stored as JSON strings. Deployments whose Redis ACLs deny
    ``SCAN`` use this backend and let the cache manager keep a key manifest.
    """

    def __init__(self, redis_url: str, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.logger = get_logger("token_cache.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                retry_on_timeout=True,
                health_check_interval=30
            )
        return self._redis

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a record."""
        redis_client = await self._get_redis()
        cached_data = await redis_client.get(key)
        if cached_data is None:
            return None

        if isinstance(cached_data, bytes):
            cached_data = cached_data.decode("utf-8")
        try:
            return json.loads(cached_data)
        except json.JSONDecodeError as e:
            raise MalformedCacheRecordError(key, "Stored value is not JSON") from e

    async def set(self, key: str, record: Dict[str, Any]) -> None:
        """Store a record."""
        redis_client = await self._get_redis()
        await redis_client.set(key, json.dumps(record))
        self.logger.debug("Stored record", key=key)

    async def remove(self, key: str) -> None:
        """Remove a record."""
        redis_client = await self._get_redis()
        await redis_client.delete(key)
        self.logger.debug("Removed record", key=key)

    async def close(self):
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis cache closed")

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
            return True
        except RedisError as e:
            self.logger.warning("Redis health check failed", error=str(e))
            return False


class ScanningRedisCache(RedisCache):
    """Redis backend that enumerates token cache keys with SCAN."""

    def __init__(self, redis_url: str, socket_timeout: float = 5.0, scan_count: int = 100):
        super().__init__(redis_url, socket_timeout)
        self.scan_count = scan_count
        self.pattern = f"{CACHE_KEY_PREFIX}{CACHE_KEY_DELIMITER}*"

    async def all_keys(self) -> List[str]:
        """List all token cache keys."""
        redis_client = await self._get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=self.pattern, count=self.scan_count):
            keys.append(key.decode("utf-8") if isinstance(key, bytes) else key)
        return keys
