"""Response DTOs for API endpoints."""

from pydantic import BaseModel, Field


class CacheStatsBody(BaseModel):
    """Counters and sizes of the response cache."""

    keys: int = Field(..., description="Number of live cache entries", ge=0)
    hits: int = Field(..., description="Lookups that found a live entry", ge=0)
    misses: int = Field(..., description="Lookups that found nothing", ge=0)
    ksize: int = Field(..., description="Summed length of live keys", ge=0)
    vsize: int = Field(..., description="Summed length of serialized values", ge=0)


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    stats: CacheStatsBody
    timestamp: str = Field(..., description="ISO 8601 time the stats were read")


class ClearCacheResponse(BaseModel):
    """Response DTO for cache clear operation."""

    message: str = Field(..., description="Human-readable status message")
    timestamp: str = Field(..., description="ISO 8601 time of the clear")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    database_healthy: bool = Field(..., description="Whether the database is reachable")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")


class ServiceInfoResponse(BaseModel):
    """Response DTO for the root endpoint."""

    message: str
    version: str
    features: list[str] = Field(default_factory=list)
