"""Exception hierarchy for the shop API.

Every exception carries the pieces of the legacy response envelope so the
app-level exception handlers can render ``{error, message, data}`` without
knowing which layer raised.
"""

from typing import Any


class ShopApiError(Exception):
    """Base exception for application-level failures."""

    status_code: int = 500

    def __init__(
        self,
        message: str = "Something went wrong!",
        status_code: int | None = None,
        data: Any = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = [] if data is None else data
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        """Convert to the legacy response envelope."""
        return {"error": True, "message": self.message, "data": self.data}


class ValidationError(ShopApiError):
    """Request parameters failed validation."""

    status_code = 400


class NotFoundError(ShopApiError):
    """A referenced record does not exist."""

    status_code = 404


class CacheSerializationError(ShopApiError):
    """A value handed to the cache store cannot be serialized.

    Raised by cache stores on ``set``; the interceptor logs it and sends
    the response uncached.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(f"Cannot cache value for key {key!r}: {reason}")
