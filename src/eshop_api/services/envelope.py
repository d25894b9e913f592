"""The legacy response envelope."""

from typing import Any


def envelope(error: bool, message: str, data: Any = None, **extras: Any) -> dict[str, Any]:
    """Build ``{error, message, data, ...extras}``.

    Extras are inserted between ``message`` and ``data`` to keep the key
    order legacy clients were written against.

    Example:
        >>> envelope(False, "Tickets retrieved successfully", [], total="0")
        {'error': False, 'message': 'Tickets retrieved successfully', 'total': '0', 'data': []}
    """
    response: dict[str, Any] = {"error": error, "message": message}
    response.update(extras)
    response["data"] = [] if data is None else data
    return response


def failure(message: str, **extras: Any) -> dict[str, Any]:
    """Application-level failure, sent with HTTP 200."""
    return envelope(True, message, [], **extras)
