"""Repository layer for data access.

Concrete cache stores implementing the CacheStore protocol, plus the
relational Database gateway used by the domain services.
"""

from .database import Database
from .memory_repository import MemoryCacheRepository
from .redis_repository import RedisCacheRepository

__all__ = [
    "Database",
    "MemoryCacheRepository",
    "RedisCacheRepository",
]
