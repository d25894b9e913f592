"""Response cache service.

This service sits between the request interceptor and the cache store:
it derives keys, applies the default TTL and exposes the admin
operations (stats, clear by pattern).
"""

import logging
from typing import Any

from eshop_api.cache_keys import derive_key
from eshop_api.config import settings
from eshop_api.entities import CacheStatsEntity
from eshop_api.protocols import CacheStore
from eshop_api.repositories.memory_repository import MemoryCacheRepository
from eshop_api.repositories.redis_repository import RedisCacheRepository

logger = logging.getLogger(__name__)


class ResponseCacheService:
    """Caches serialized API responses by endpoint and effective parameters.

    This service depends on the CacheStore PROTOCOL, not on a concrete
    backend, so the in-process store and Redis are interchangeable.

    Example:
        ```python
        from eshop_api.services import ResponseCacheService

        cache = ResponseCacheService.create()
        key = cache.key_for("get_settings", {"type": "all"})
        if (payload := cache.lookup(key)) is None:
            payload = compute()
            cache.store(key, payload)
        ```
    """

    def __init__(self, store: CacheStore, ttl: int | None = None) -> None:
        """Initialize the response cache service.

        Args:
            store: Cache storage backend (required).
            ttl: Default time-to-live in seconds. Defaults to settings.
        """
        self._store = store
        self._ttl = settings.cache_ttl if ttl is None else ttl

    @classmethod
    def create(cls, store: CacheStore | None = None, ttl: int | None = None) -> "ResponseCacheService":
        """Factory method to create ResponseCacheService with the configured backend.

        Args:
            store: Cache storage backend. If None, picks memory or Redis from settings.
            ttl: Default time-to-live in seconds. If None, uses settings.

        Returns:
            Configured ResponseCacheService instance
        """
        if store is None:
            store = RedisCacheRepository.create() if settings.uses_redis else MemoryCacheRepository.create()
        return cls(store=store, ttl=ttl)

    def key_for(self, endpoint: str, params: dict[str, Any]) -> str:
        return derive_key(endpoint, params)

    def lookup(self, key: str) -> Any | None:
        """Get a cached payload, counting a hit or a miss."""
        return self._store.get(key)

    def store(self, key: str, payload: Any, ttl: int | None = None) -> bool:
        """Cache a payload.

        Args:
            key: Derived cache key
            payload: JSON-serializable response payload
            ttl: Override the default TTL; values <= 0 skip caching

        Returns:
            True if stored

        Raises:
            CacheSerializationError: If the payload cannot be serialized
        """
        return self._store.set(key, payload, self._ttl if ttl is None else ttl)

    def clear(self, pattern: str = "") -> int:
        """Delete entries whose key contains ``pattern``.

        Args:
            pattern: Substring to match; empty clears everything and resets counters

        Returns:
            Number of entries deleted
        """
        deleted = self._store.delete_matching(pattern)
        logger.info("Cleared %d cache entries for pattern %r", deleted, pattern)
        return deleted

    def stats(self) -> CacheStatsEntity:
        return self._store.stats()

    def is_healthy(self) -> bool:
        return self._store.health_check()

    def close(self) -> None:
        self._store.close()

    @property
    def ttl(self) -> int:
        """Get the default time-to-live in seconds."""
        return self._ttl

    @property
    def store_backend(self) -> CacheStore:
        """Get the underlying cache store (for testing)."""
        return self._store
