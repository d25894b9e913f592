"""Cache entry domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one cached response.

    The value is kept as serialized JSON text so callers never share a
    mutable object with the store; an entry is replaced wholesale on
    re-cache and never edited in place.

    Attributes:
        key: The canonical cache key
        value: The response payload, serialized as JSON text
        expires_at: Clock reading after which the entry is absent
    """

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
