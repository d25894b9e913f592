"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract for the admin
and service endpoints. Legacy shop endpoints answer with plain envelope
dicts built by the services.
"""

from .requests import ClearCacheRequest, ShopRequest
from .responses import (
    CacheStatsBody,
    CacheStatsResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    ServiceInfoResponse,
)

__all__ = [
    "ShopRequest",
    "ClearCacheRequest",
    "CacheStatsBody",
    "CacheStatsResponse",
    "ClearCacheResponse",
    "HealthCheckResponse",
    "ServiceInfoResponse",
]
