"""In-process implementation of CacheStore.

Backed by ``cachetools.TLRUCache`` so every entry carries its own expiry
time. Entries are stored as JSON text, which both enforces the
serializability contract and hands every caller a private copy.
"""

import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from cachetools import TLRUCache

from eshop_api.config import settings
from eshop_api.entities import CacheEntryEntity, CacheStatsEntity
from eshop_api.errors import CacheSerializationError

logger = logging.getLogger(__name__)


def _entry_expiry(_key: str, entry: CacheEntryEntity, _now: float) -> float:
    return entry.expires_at


class MemoryCacheRepository:
    """Process-wide TTL map with hit/miss statistics.

    This class satisfies the CacheStore protocol through structural
    typing. Expired entries are invisible to lookups immediately; they
    are physically removed by a sweep that runs at most once per
    ``check_period`` seconds, piggybacked on store operations.

    Example:
        ```python
        store = MemoryCacheRepository.create()
        store.set("get_settings|type:all|user_id:", payload, 300)
        store.get("get_settings|type:all|user_id:")
        ```
    """

    def __init__(
        self,
        maxsize: int | None = None,
        check_period: int | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the memory cache repository.

        Args:
            maxsize: Maximum number of entries before LRU eviction.
            check_period: Seconds between expiry sweeps.
            clock: Monotonic time source, injectable for tests.
        """
        self._clock = clock or time.monotonic
        self._check_period = check_period or settings.cache_check_period
        self._cache: TLRUCache = TLRUCache(
            maxsize=maxsize or settings.cache_max_entries,
            ttu=_entry_expiry,
            timer=self._clock,
        )
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._last_sweep = self._clock()

    @classmethod
    def create(
        cls,
        maxsize: int | None = None,
        check_period: int | None = None,
    ) -> "MemoryCacheRepository":
        """Factory method to create MemoryCacheRepository with defaults.

        Args:
            maxsize: Entry limit. If None, uses settings.
            check_period: Sweep interval in seconds. If None, uses settings.

        Returns:
            Configured MemoryCacheRepository
        """
        return cls(maxsize=maxsize, check_period=check_period)

    def _maybe_sweep(self) -> None:
        now = self._clock()
        if now - self._last_sweep >= self._check_period:
            self._cache.expire(now)
            self._last_sweep = now

    def get(self, key: str) -> Any | None:
        with self._lock:
            self._maybe_sweep()
            entry: CacheEntryEntity | None = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            text = entry.value
        return json.loads(text)

    def set(self, key: str, value: Any, ttl: int) -> bool:
        if ttl <= 0:
            logger.debug("Not caching %s: ttl=%s", key, ttl)
            return False

        try:
            text = json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(key, str(e)) from e

        with self._lock:
            entry = CacheEntryEntity(key=key, value=text, expires_at=self._clock() + ttl)
            self._cache[key] = entry
            self._maybe_sweep()
        return True

    def delete(self, key: str) -> int:
        with self._lock:
            return 1 if self._cache.pop(key, None) is not None else 0

    def delete_matching(self, pattern: str) -> int:
        if not pattern:
            with self._lock:
                self._cache.expire()
                count = len(self._cache)
            self.clear()
            return count

        with self._lock:
            self._cache.expire()
            matched = [key for key in list(self._cache.keys()) if pattern in key]
            for key in matched:
                del self._cache[key]
        return len(matched)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def keys(self) -> list[str]:
        with self._lock:
            self._cache.expire()
            return list(self._cache.keys())

    def stats(self) -> CacheStatsEntity:
        with self._lock:
            self._cache.expire()
            entries = list(self._cache.values())
            return CacheStatsEntity(
                keys=len(entries),
                hits=self._hits,
                misses=self._misses,
                ksize=sum(len(entry.key) for entry in entries),
                vsize=sum(len(entry.value) for entry in entries),
            )

    def health_check(self) -> bool:
        return True

    def close(self) -> None:
        self.clear()
