"""eShop API - legacy-compatible shop backend with response caching.

This package provides a layered architecture:

Layers:
    - protocols: Interface contracts (CacheStore)
    - repositories: Cache stores and the Database gateway
    - services: Domain logic and the response cache
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Cross-cutting modules: ``cache_keys`` (key derivation), ``normalize``
(response shaping), ``validation``, ``media``, ``errors``, ``log``.

Usage:
    ```python
    from eshop_api.services import ResponseCacheService

    cache = ResponseCacheService.create()
    cache.key_for("get_settings", {"user_id": 7})
    ```

For HTTP API:
    ```python
    from eshop_api.api.app import app
    ```
"""

from eshop_api.cache_keys import CACHE_KEY_SPECS, KeySpec, derive_key
from eshop_api.config import get_redis_client, settings
from eshop_api.entities import CacheEntryEntity, CacheStatsEntity
from eshop_api.errors import CacheSerializationError, NotFoundError, ShopApiError, ValidationError
from eshop_api.normalize import Kind, normalize
from eshop_api.protocols import CacheStore

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    # Cache keys
    "CACHE_KEY_SPECS",
    "KeySpec",
    "derive_key",
    # Normalization
    "Kind",
    "normalize",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheStatsEntity",
    # Errors
    "ShopApiError",
    "ValidationError",
    "NotFoundError",
    "CacheSerializationError",
]
