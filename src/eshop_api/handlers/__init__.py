"""Handler layer for HTTP endpoints.

Handlers depend on services (business logic), not directly on
repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .cache_handler import CacheHandler
from .shop_handler import Handler, HandlerResult, ShopHandler

__all__ = [
    "CacheHandler",
    "Handler",
    "HandlerResult",
    "ShopHandler",
]
