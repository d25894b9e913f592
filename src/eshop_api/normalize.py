"""Response-shape normalization.

Database rows are reshaped into the field layout legacy clients expect:
numbers become text, nulls become empty strings, some fields are wrapped
in one-element arrays and datetimes are printed in a fixed format. Each
field of a response row is declared with a ``Kind`` and ``normalize``
applies the declared conversion.

The transforms here are pure and never raise. Malformed input degrades
to the kind's zero value (``""``, ``"0"`` or ``[]``).
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_ESCAPED_CHAR = re.compile(r"\\(.)")

# Fields that keep their raw form under output escaping.
ESCAPE_EXCLUDED_FIELDS = ("images", "other_images")


class Kind(str, Enum):
    """How a single field is converted for the client."""

    STRINGIFY_NUMBER = "stringify_number"
    PASSTHROUGH_STRING = "passthrough_string"
    NULL_TO_EMPTY_STRING = "null_to_empty_string"
    WRAP_AS_SINGLETON_ARRAY = "wrap_as_singleton_array"
    FORMAT_DATETIME = "format_datetime"
    RAW = "raw"


FieldSpec = Mapping[str, Kind]

_MISSING = object()


def is_number(value: Any) -> bool:
    """Check for a native number, excluding booleans."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def number_text(value: int | float | Decimal) -> str:
    """Render a number the way the database prints it.

    Integral floats lose their ``.0`` and decimals keep their scale, so
    ``12.0`` gives ``"12"`` and ``Decimal("10.50")`` gives ``"10.50"``.
    """
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def stringify_number(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if is_number(value):
        return number_text(value)
    if isinstance(value, str):
        return value
    return "0"


def passthrough_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if is_number(value):
        return number_text(value)
    if isinstance(value, bool):
        return "1" if value else "0"
    return ""


def null_to_empty_string(value: Any) -> Any:
    if value is None or value is _MISSING:
        return ""
    if is_number(value):
        return number_text(value)
    return value


def format_datetime(value: Any) -> str:
    """Format a datetime as ``YYYY-MM-DD HH:MM:SS``.

    Accepts ``datetime``, ``date`` and ISO-8601 text (SQLite hands dates
    back as text). Anything else gives ``""``.
    """
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).strftime(DATETIME_FORMAT)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return ""
        return parsed.strftime(DATETIME_FORMAT)
    return ""


def wrap_singleton(value: Any) -> list[Any]:
    if value is None or value is _MISSING or value == "" or value == {}:
        return []
    if isinstance(value, list):
        return value
    return [value]


_CONVERTERS = {
    Kind.STRINGIFY_NUMBER: stringify_number,
    Kind.PASSTHROUGH_STRING: passthrough_string,
    Kind.NULL_TO_EMPTY_STRING: null_to_empty_string,
    Kind.WRAP_AS_SINGLETON_ARRAY: wrap_singleton,
    Kind.FORMAT_DATETIME: format_datetime,
}


def convert(value: Any, kind: Kind) -> Any:
    """Apply one kind's conversion to a single value."""
    if kind is Kind.RAW:
        return None if value is _MISSING else value
    return _CONVERTERS[kind](value)


def normalize(
    row: Mapping[str, Any] | None,
    field_spec: FieldSpec,
    *,
    extra: Mapping[str, Kind] | None = None,
) -> dict[str, Any]:
    """Reshape one database row into a client-facing record.

    Fields named in ``field_spec`` come first, in spec order, and are
    always present. Other row fields are dropped unless ``extra`` gives
    them a kind. Normalizing an already normalized record returns an
    equal record.

    Args:
        row: Raw row from the database, or None
        field_spec: Ordered mapping of field name to Kind
        extra: Kinds for additional fields appended after the spec fields

    Returns:
        A new dict; ``row`` is never modified
    """
    source: Mapping[str, Any] = row if isinstance(row, Mapping) else {}

    record = {name: convert(source.get(name, _MISSING), kind) for name, kind in field_spec.items()}
    for name, kind in (extra or {}).items():
        if name in record or name not in source:
            continue
        record[name] = convert(source[name], kind)
    return record


def stringify_numbers_deep(value: Any) -> Any:
    """Turn every number inside a parsed JSON document into text.

    Booleans and nulls are left alone, as are strings.
    """
    if isinstance(value, dict):
        return {key: stringify_numbers_deep(item) for key, item in value.items()}
    if isinstance(value, list):
        return [stringify_numbers_deep(item) for item in value]
    if is_number(value):
        return number_text(value)
    return value


def stringify_numbers(row: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow variant of ``stringify_numbers_deep`` for flat rows.

    Datetime columns are formatted too, since the drivers return them as
    native objects.
    """
    result: dict[str, Any] = {}
    for key, value in row.items():
        if is_number(value):
            result[key] = number_text(value)
        elif isinstance(value, (datetime, date)):
            result[key] = format_datetime(value)
        else:
            result[key] = value
    return result


def strip_slashes(text: str) -> str:
    r"""Remove backslash escapes: ``\x`` becomes ``x``."""
    return _ESCAPED_CHAR.sub(r"\1", text)


def output_escaping(data: Any) -> Any:
    """Unescape strings and stringify numbers across a row or list of rows.

    ``images`` and ``other_images`` are dropped from mappings, mirroring
    the legacy output escaping.
    """
    if isinstance(data, list):
        return [output_escaping(item) for item in data]
    if isinstance(data, Mapping):
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key in ESCAPE_EXCLUDED_FIELDS:
                continue
            if is_number(value):
                result[key] = number_text(value)
            elif isinstance(value, str):
                result[key] = strip_slashes(value)
            elif isinstance(value, (datetime, date)):
                result[key] = format_datetime(value)
            else:
                result[key] = value
        return result
    if isinstance(data, str):
        return strip_slashes(data)
    return data
