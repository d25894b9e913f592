"""HTTP handlers for cache administration and health."""

from datetime import datetime, timezone

from eshop_api.dto import (
    CacheStatsBody,
    CacheStatsResponse,
    ClearCacheRequest,
    ClearCacheResponse,
    HealthCheckResponse,
)
from eshop_api.repositories.database import Database
from eshop_api.services import ResponseCacheService


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class CacheHandler:
    """HTTP handlers for the admin cache endpoints.

    This handler delegates to ResponseCacheService and converts its
    entities to DTOs.

    Example:
        ```python
        handler = CacheHandler(cache_service=ResponseCacheService.create(), database=db)

        @app.get("/admin/cache-stats", response_model=CacheStatsResponse)
        async def cache_stats():
            return handler.get_stats()
        ```
    """

    def __init__(self, cache_service: ResponseCacheService, database: Database) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: The response cache (required).
            database: Database gateway, checked by the health endpoint (required).
        """
        self._cache = cache_service
        self._db = database

    def get_stats(self) -> CacheStatsResponse:
        """Handle GET /admin/cache-stats requests."""
        stats = self._cache.stats()
        return CacheStatsResponse(stats=CacheStatsBody(**stats.to_dict()), timestamp=_timestamp())

    def clear_cache(self, request: ClearCacheRequest) -> ClearCacheResponse:
        """Handle POST /admin/clear-cache requests.

        Args:
            request: Optional key substring; empty clears everything

        Returns:
            ClearCacheResponse echoing the pattern
        """
        pattern = request.pattern or ""
        self._cache.clear(pattern)
        return ClearCacheResponse(
            message=f'Cache cleared for pattern: "{pattern}" (empty pattern clears all)',
            timestamp=_timestamp(),
        )

    def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        database_healthy = self._db.health_check()
        cache_healthy = self._cache.is_healthy()

        return HealthCheckResponse(
            status="healthy" if database_healthy and cache_healthy else "unhealthy",
            database_healthy=database_healthy,
            cache_healthy=cache_healthy,
        )
