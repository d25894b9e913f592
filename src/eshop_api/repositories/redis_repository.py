"""Redis implementation of CacheStore.

Lets several API processes share one response cache. Values are stored as
JSON strings with a native Redis expiry; hit/miss counters live in a hash
next to the entries so they survive process restarts.
"""

import json
import logging
from typing import Any

import redis

from eshop_api.config import get_redis_client, settings
from eshop_api.entities import CacheStatsEntity
from eshop_api.errors import CacheSerializationError

logger = logging.getLogger(__name__)


class RedisCacheRepository:
    """Redis implementation using plain string keys with EX expiry.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Layout:
    - ``{prefix}:{cache key}`` holds the serialized payload
    - ``{prefix}:__stats__`` is a hash with ``hits`` and ``misses``
    """

    STATS_SUFFIX = "__stats__"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Redis client instance. If None, creates default.
            prefix: Namespace for all keys written by this repository.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = prefix or settings.cache_key_prefix
        self._stats_key = f"{self._prefix}:{self.STATS_SUFFIX}"

    @classmethod
    def create(cls, prefix: str | None = None) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            prefix: Key namespace. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(prefix=prefix)

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _cache_key(self, full_key: str) -> str:
        return full_key[len(self._prefix) + 1 :]

    def _entry_keys(self) -> list[str]:
        return [
            key
            for key in self._client.scan_iter(match=f"{self._prefix}:*")
            if key != self._stats_key
        ]

    def get(self, key: str) -> Any | None:
        """Look up a payload; an unreachable Redis reads as a miss."""
        try:
            text = self._client.get(self._full_key(key))
            self._client.hincrby(self._stats_key, "misses" if text is None else "hits", 1)
        except redis.RedisError as e:
            logger.warning("Redis lookup for %s failed: %s", key, e)
            return None

        if text is None:
            return None
        return json.loads(text)

    def set(self, key: str, value: Any, ttl: int) -> bool:
        if ttl <= 0:
            logger.debug("Not caching %s: ttl=%s", key, ttl)
            return False

        try:
            text = json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(key, str(e)) from e

        try:
            return bool(self._client.set(self._full_key(key), text, ex=ttl))
        except redis.RedisError as e:
            logger.warning("Redis write for %s failed: %s", key, e)
            return False

    def delete(self, key: str) -> int:
        result: int = self._client.delete(self._full_key(key))  # type: ignore[assignment]
        return result

    def delete_matching(self, pattern: str) -> int:
        if not pattern:
            count = len(self._entry_keys())
            self.clear()
            return count

        matched = [key for key in self._entry_keys() if pattern in self._cache_key(key)]
        if not matched:
            return 0
        result: int = self._client.delete(*matched)  # type: ignore[assignment]
        return result

    def clear(self) -> None:
        keys = self._entry_keys()
        pipe = self._client.pipeline()
        if keys:
            pipe.delete(*keys)
        pipe.delete(self._stats_key)
        pipe.execute()

    def keys(self) -> list[str]:
        return [self._cache_key(key) for key in self._entry_keys()]

    def stats(self) -> CacheStatsEntity:
        keys = self._entry_keys()
        counters = self._client.hgetall(self._stats_key) or {}

        vsize = 0
        if keys:
            pipe = self._client.pipeline()
            for key in keys:
                pipe.strlen(key)
            vsize = sum(int(size) for size in pipe.execute())

        return CacheStatsEntity(
            keys=len(keys),
            hits=int(counters.get("hits", 0)),
            misses=int(counters.get("misses", 0)),
            ksize=sum(len(self._cache_key(key)) for key in keys),
            vsize=vsize,
        )

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    def close(self) -> None:
        self._client.close()

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
