"""Service layer for business logic.

Domain services run raw SQL through the Database gateway and return
legacy response envelopes. The response cache service wraps the cache
store used by the request interceptor.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from eshop_api.services import ResponseCacheService, SettingsService

    cache = ResponseCacheService.create()
    settings_service = SettingsService(database)
    ```
"""

from .address_service import AddressService
from .cache_service import ResponseCacheService
from .cart_service import CartService
from .faq_service import FaqService
from .section_service import SectionService
from .settings_service import SettingsService
from .ticket_service import TicketService

__all__ = [
    "AddressService",
    "CartService",
    "FaqService",
    "ResponseCacheService",
    "SectionService",
    "SettingsService",
    "TicketService",
]
