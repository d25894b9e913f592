"""Form-style request validation.

Rules are written as pipe-separated strings, e.g.
``{"user_id": "required|numeric"}``, and produce the same messages the
legacy API sent.
"""

import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DIGITS = re.compile(r"^\d+$")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_numeric(value: Any) -> bool:
    """Check whether a value reads as a number (``"12"``, ``3.5``, ``" 4 "``)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def is_digits(value: Any) -> bool:
    return _DIGITS.match(str(value).strip()) is not None


def validate(data: Mapping[str, Any], rules: Mapping[str, str]) -> str | None:
    """Check request data against validation rules.

    Supported rules: ``required``, ``numeric``, ``valid_email``. Optional
    fields are only checked when present.

    Args:
        data: Request parameters
        rules: Field name to rule string

    Returns:
        The space-joined error messages, or None when the data is valid

    Example:
        >>> validate({"user_id": "abc"}, {"user_id": "numeric"})
        'The user_id field must be numeric.'
    """
    errors: list[str] = []
    for field, rule_string in rules.items():
        value = data.get(field)
        for rule in rule_string.split("|"):
            if rule == "required" and is_blank(value) and value != 0:
                errors.append(f"The {field} field is required.")
            elif rule == "numeric" and not is_blank(value) and not is_numeric(value):
                errors.append(f"The {field} field must be numeric.")
            elif rule == "valid_email" and not is_blank(value) and not _EMAIL.match(str(value)):
                errors.append(f"The {field} field must contain a valid email address.")

    return " ".join(errors) if errors else None


def missing_fields(data: Mapping[str, Any], fields: list[str]) -> list[str]:
    """List the fields that are absent, null or empty."""
    return [field for field in fields if data.get(field) is None or data.get(field) == ""]


def as_int(value: Any, default: int) -> int:
    """Parse an integer parameter, falling back to ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value).strip()))
        except (ValueError, OverflowError):
            return default


def as_text(value: Any, default: str = "") -> str:
    """Read a parameter as stripped text, falling back to ``default``."""
    if value is None:
        return default
    text = str(value).strip()
    return text or default
