"""Cache storage protocol.

Defines the interface for any backend that holds cached API responses
keyed by the canonical strings produced in ``eshop_api.cache_keys``.

Implementations:
- In-process TTL map (default)
- Redis
"""

from typing import Any, Protocol, runtime_checkable

from eshop_api.entities import CacheStatsEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for response cache backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.

    Example:
        ```python
        from eshop_api.protocols import CacheStore

        store: CacheStore = MemoryCacheRepository()
        store: CacheStore = RedisCacheRepository(...)
        ```
    """

    def get(self, key: str) -> Any | None:
        """Look up a cached value.

        Counts a hit when the key is live, a miss otherwise. Expired
        entries are treated as absent.

        Args:
            key: The cache key

        Returns:
            A fresh copy of the stored value, or None if absent
        """
        ...

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a value, replacing any previous entry for the key.

        Args:
            key: The cache key
            value: A JSON-serializable value
            ttl: Time-to-live in seconds; values <= 0 are not stored

        Returns:
            True if stored, False if rejected by the TTL policy

        Raises:
            CacheSerializationError: If the value cannot be serialized
        """
        ...

    def delete(self, key: str) -> int:
        """Delete a single entry.

        Returns:
            Number of entries removed (0 or 1)
        """
        ...

    def delete_matching(self, pattern: str) -> int:
        """Delete every entry whose key contains ``pattern``.

        An empty pattern clears the whole cache, counters included.

        Returns:
            Number of entries removed
        """
        ...

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss counters."""
        ...

    def keys(self) -> list[str]:
        """List live cache keys."""
        ...

    def stats(self) -> CacheStatsEntity:
        """Get key count, hit/miss counters and key/value sizes."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is reachable."""
        ...

    def close(self) -> None:
        """Release backend resources at shutdown."""
        ...
