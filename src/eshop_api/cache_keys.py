"""Canonical cache keys for cached endpoints.

A key is ``endpoint|name:value|name:value...`` with parameter names in
lexicographic order. Each endpoint lists the parameters that affect its
result, so requests differing only in other parameters share one entry.
Adding a cached endpoint means adding a row to ``CACHE_KEY_SPECS``.

Backslash, ``|`` and ``:`` inside names and values are escaped with a
backslash, so distinct parameter sets never collapse into one key.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class KeySpec:
    """Parameters that take part in one endpoint's cache key.

    Attributes:
        params: Relevant parameter names
        defaults: Values used when a parameter is absent or empty; a
            parameter with a default always appears in the key
    """

    params: tuple[str, ...]
    defaults: Mapping[str, str] = field(default_factory=dict)


CACHE_KEY_SPECS: Mapping[str, KeySpec] = MappingProxyType(
    {
        "get_settings": KeySpec(
            params=("type", "user_id"),
            defaults={"type": "all", "user_id": ""},
        ),
        "get_categories": KeySpec(
            params=(
                "id", "slug", "limit", "offset", "sort", "order",
                "has_child_or_item", "ignore_status", "city",
            ),
        ),
        "get_products": KeySpec(
            params=(
                "id", "product_ids", "category_id", "user_id", "search",
                "tags", "attribute_value_ids", "sort", "limit", "offset",
                "order", "top_rated_product", "min_price", "max_price",
                "discount", "product_type", "city", "zipcode_id",
            ),
        ),
        "get_sections": KeySpec(
            params=(
                "section_id", "user_id", "limit", "offset", "p_limit",
                "p_offset", "p_sort", "p_order", "top_rated_product",
                "city", "zipcode",
            ),
        ),
    }
)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|").replace(":", "\\:")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def format_key_value(value: Any) -> str:
    """Render a parameter value the way it appears inside a key."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(format_key_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


def derive_key(
    endpoint: str,
    params: Mapping[str, Any] | None,
    specs: Mapping[str, KeySpec] = CACHE_KEY_SPECS,
) -> str:
    """Map an endpoint and its request parameters to a cache key.

    Pure and total: no I/O, and equal inputs always give the same string.
    Endpoints without a KeySpec use every non-empty parameter.

    Args:
        endpoint: Endpoint name, e.g. ``get_settings``
        params: Request parameters (the JSON body)
        specs: Key spec table, overridable for tests

    Returns:
        The canonical cache key

    Example:
        >>> derive_key("get_settings", {"type": "all", "irrelevant": "x"})
        'get_settings|type:all|user_id:'
    """
    params = params or {}
    spec = specs.get(endpoint)

    selected: dict[str, Any] = {}
    if spec is None:
        selected = {name: value for name, value in params.items() if not _is_empty(value)}
    else:
        for name in spec.params:
            value = params.get(name)
            if _is_empty(value):
                if name not in spec.defaults:
                    continue
                value = spec.defaults[name]
            selected[name] = value

    parts = [
        f"{_escape(str(name))}:{_escape(format_key_value(selected[name]))}" for name in sorted(selected)
    ]
    return "|".join([endpoint, *parts])
