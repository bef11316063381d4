"""Column value codecs applied between entity values and driver values."""

from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, get_origin

from .structure import Column


def to_database_value(column: Column, value: Any) -> Any:
    """Serialize one entity value for a DB write."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if _is_json_type(column.python_type) and not isinstance(value, (str, bytes)):
        return json.dumps(value)
    return value


def from_database_value(column: Column, raw: Any) -> Any:
    """Deserialize one driver value into the column's value type."""

    if raw is None:
        return None
    python_type = column.python_type
    if _is_json_type(python_type):
        return _load_json(raw, column)
    if python_type is Any or not isinstance(python_type, type):
        return raw
    if isinstance(raw, python_type):
        return raw

    try:
        if issubclass(python_type, Enum):
            return python_type(raw)
        if python_type is bool:
            return bool(raw)
        if python_type is Decimal:
            return Decimal(str(raw))
        if python_type is datetime and isinstance(raw, str):
            return datetime.fromisoformat(raw)
        if python_type is date and isinstance(raw, str):
            return date.fromisoformat(raw)
        if python_type is time and isinstance(raw, str):
            return time.fromisoformat(raw)
        if python_type is bytes and isinstance(raw, (bytearray, memoryview)):
            return bytes(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Cannot convert value {raw!r} of column {column} to {python_type.__name__}."
        ) from exc

    return raw


def _is_json_type(python_type: Any) -> bool:
    return python_type in (dict, list) or get_origin(python_type) in (dict, list)


def _load_json(raw: Any, column: Column) -> Any:
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8")
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Cannot deserialize JSON for column {column}: {raw!r}.") from exc
