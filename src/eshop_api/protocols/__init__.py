"""Protocol interfaces for swappable implementations.

Protocols use structural typing, so any class with the right methods
fits: the in-memory store in production and tests, Redis when several
API processes must share one cache.

Usage:
    ```python
    from eshop_api.protocols import CacheStore

    store: CacheStore = MemoryCacheRepository()
    ```
"""

from .cache_store import CacheStore

__all__ = [
    "CacheStore",
]
