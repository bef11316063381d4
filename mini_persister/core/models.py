"""Dataclass introspection helpers used to derive tables and strategies."""

from __future__ import annotations

import types
from dataclasses import MISSING, Field, fields, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from functools import lru_cache
from typing import Any, ClassVar, Dict, List, Protocol, Type, Union, get_args, get_origin, get_type_hints


class DataclassModel(Protocol):
    """Protocol for supported dataclass model types."""

    __dataclass_fields__: ClassVar[dict[str, Any]]


_NAMED_TYPES: Dict[str, type] = {
    "bool": bool,
    "int": int,
    "float": float,
    "str": str,
    "bytes": bytes,
    "decimal": Decimal,
    "datetime": datetime,
    "date": date,
    "time": time,
}

_UNION_ORIGINS = (Union, types.UnionType)


def require_dataclass_model(cls: Type[Any]) -> None:
    """Validate that a class is a dataclass model."""

    if not isinstance(cls, type) or not is_dataclass(cls):
        name = getattr(cls, "__name__", repr(cls))
        raise TypeError(f"{name} must be a dataclass.")


def table_name(model_or_cls: Any) -> str:
    """Resolve table name from model class or instance.

    Uses `__table__` override when present, otherwise lowercased class name.
    """

    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    name = getattr(cls, "__table__", None)
    return name if isinstance(name, str) and name else cls.__name__.lower()


def model_fields(cls: Type[DataclassModel]) -> List[Field[Any]]:
    """Return dataclass fields for a model type."""

    require_dataclass_model(cls)
    return list(fields(cls))


def is_auto_pk(field: Field[Any]) -> bool:
    return bool(field.metadata.get("pk") and field.metadata.get("auto"))


def column_name(field: Field[Any]) -> str:
    """Column name for a field, honoring `metadata={'column': ...}`."""

    name = field.metadata.get("column")
    return name if isinstance(name, str) and name else field.name


def field_type(cls: Type[DataclassModel], field: Field[Any]) -> Any:
    """Return the value type of a field with `Optional[...]` unwrapped."""

    annotation = _model_type_hints(cls).get(field.name, field.type)
    if isinstance(annotation, str):
        return _resolve_string_annotation(annotation)
    return unwrap_optional(annotation)


def is_nullable(cls: Type[DataclassModel], field: Field[Any]) -> bool:
    """Infer whether SQL column should allow NULL values."""

    if field.default is None:
        return True

    if field.default is not MISSING:
        return False

    annotation = _model_type_hints(cls).get(field.name, field.type)
    if isinstance(annotation, str):
        lowered = annotation.lower()
        return (
            lowered.startswith("optional[")
            or "| none" in lowered
            or "none |" in lowered
            or "typing.optional[" in lowered
        )

    origin = get_origin(annotation)
    if origin is None:
        return False

    return any(arg is type(None) for arg in get_args(annotation))


def unwrap_optional(annotation: Any) -> Any:
    """Extract wrapped type from `Optional[T]` style annotations."""

    if get_origin(annotation) not in _UNION_ORIGINS:
        return annotation

    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if len(args) == 1:
        return args[0]
    return annotation


@lru_cache(maxsize=None)
def _model_type_hints(cls: Type[Any]) -> dict[str, Any]:
    try:
        return dict(get_type_hints(cls))
    except (NameError, TypeError):
        return {}


def _resolve_string_annotation(annotation: str) -> Any:
    lowered = annotation.lower()
    for prefix in ("optional[", "typing.optional["):
        if lowered.startswith(prefix) and lowered.endswith("]"):
            lowered = lowered[len(prefix):-1]
    parts = [part.strip() for part in lowered.split("|") if part.strip() != "none"]
    if len(parts) == 1:
        name = parts[0].rsplit(".", 1)[-1]
        if name in _NAMED_TYPES:
            return _NAMED_TYPES[name]
    return annotation
