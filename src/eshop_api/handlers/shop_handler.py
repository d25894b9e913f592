"""Handlers for the legacy shop endpoints.

Each handler takes the request parameters as a dict and returns a
HandlerResult. Application-level failures come back as ``error: true``
envelopes with status 200, exactly as the legacy API sent them; invalid
input that the legacy API rejected with an HTTP error is raised as a
ShopApiError and rendered by the app's exception handlers.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from eshop_api.config import Settings
from eshop_api.repositories.database import Database
from eshop_api.services import (
    AddressService,
    CartService,
    FaqService,
    SectionService,
    SettingsService,
    TicketService,
)


@dataclass(frozen=True)
class HandlerResult:
    """A handler's response before it is sent."""

    payload: Any
    status_code: int = 200

    @property
    def cacheable(self) -> bool:
        """Only successful envelopes may be cached."""
        if not 200 <= self.status_code < 300:
            return False
        return not (isinstance(self.payload, dict) and self.payload.get("error") is True)


Handler = Callable[[dict[str, Any]], HandlerResult]


class ShopHandler:
    """Maps endpoint names onto domain service operations.

    Example:
        ```python
        handler = ShopHandler.create(database)
        result = handler.handle("get_settings", {"type": "all"})
        result.payload["message"]  # "Settings retrieved successfully"
        ```
    """

    def __init__(
        self,
        settings_service: SettingsService,
        section_service: SectionService,
        address_service: AddressService,
        ticket_service: TicketService,
        faq_service: FaqService,
        cart_service: CartService,
    ) -> None:
        self._operations: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "get_settings": settings_service.get_settings,
            "get_sections": section_service.get_sections,
            "get_address": address_service.get_address,
            "add_address": address_service.add_address,
            "update_address": address_service.update_address,
            "delete_address": address_service.delete_address,
            "get_ticket_types": ticket_service.get_ticket_types,
            "add_ticket": ticket_service.add_ticket,
            "edit_ticket": ticket_service.edit_ticket,
            "send_message": ticket_service.send_message,
            "get_tickets": ticket_service.get_tickets,
            "get_messages": ticket_service.get_messages,
            "add_product_faqs": faq_service.add_product_faqs,
            "get_product_faqs": faq_service.get_product_faqs,
            "manage_cart": cart_service.manage_cart,
            "remove_from_cart": cart_service.remove_from_cart,
            "get_user_cart": cart_service.get_user_cart,
            "get_cart": cart_service.get_cart,
        }

    @classmethod
    def create(cls, database: Database, settings: Settings | None = None) -> "ShopHandler":
        """Factory method wiring every domain service to one database.

        Args:
            database: Database gateway shared by all services
            settings: Settings for media URLs. If None, uses global settings.

        Returns:
            Configured ShopHandler
        """
        return cls(
            settings_service=SettingsService(database, settings),
            section_service=SectionService(database),
            address_service=AddressService(database),
            ticket_service=TicketService(database),
            faq_service=FaqService(database),
            cart_service=CartService(database),
        )

    @property
    def endpoints(self) -> list[str]:
        return list(self._operations)

    def handle(self, endpoint: str, params: dict[str, Any]) -> HandlerResult:
        """Run one endpoint.

        Raises:
            KeyError: If the endpoint is unknown
            ShopApiError: For input the legacy API rejected with an HTTP error
        """
        return HandlerResult(payload=self._operations[endpoint](params))

    def handler_for(self, endpoint: str) -> Handler:
        """Bind an endpoint name, producing a ``(params) -> HandlerResult`` callable."""
        if endpoint not in self._operations:
            raise KeyError(f"Unknown endpoint: {endpoint}")

        def handler(params: dict[str, Any]) -> HandlerResult:
            return self.handle(endpoint, params)

        handler.__name__ = endpoint
        return handler
