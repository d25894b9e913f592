"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ShopRequest(BaseModel):
    """Body of a legacy shop endpoint.

    The legacy endpoints accept free-form parameter sets and validate
    them in the services, with the legacy error messages, so every field
    is passed through as sent.
    """

    model_config = ConfigDict(extra="allow")

    def to_params(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ClearCacheRequest(BaseModel):
    """Request DTO for clearing cached responses."""

    pattern: str | None = Field(
        None,
        description="Delete entries whose key contains this substring (if empty, clears all)",
    )

    @field_validator("pattern", mode="before")
    @classmethod
    def pattern_as_text(cls, value: Any) -> str | None:
        """Accept any scalar pattern; the endpoint never rejects a clear."""
        return None if value is None else str(value)
