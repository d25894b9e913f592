"""Domain entities (internal models).

These are internal representations used by services and repositories.
For API contracts, use the DTO classes from the dto package.
"""

from .cache_entry import CacheEntryEntity
from .cache_stats import CacheStatsEntity

__all__ = [
    "CacheEntryEntity",
    "CacheStatsEntity",
]
