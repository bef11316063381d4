"""Per-operation value carrier bound into generated statements."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .structure import Column


class PersistentValues:
    """Column values for one operation.

    `upsert_values` feed INSERT column lists and UPDATE SET clauses,
    `where_values` feed WHERE predicates. Both keep insertion order.
    """

    __slots__ = ("_upsert_values", "_where_values")

    def __init__(
        self,
        upsert_values: Optional[Mapping[Column, Any]] = None,
        where_values: Optional[Mapping[Column, Any]] = None,
    ):
        self._upsert_values: Dict[Column, Any] = dict(upsert_values or {})
        self._where_values: Dict[Column, Any] = dict(where_values or {})

    @property
    def upsert_values(self) -> Dict[Column, Any]:
        return self._upsert_values

    @property
    def where_values(self) -> Dict[Column, Any]:
        return self._where_values

    def put_upsert_value(self, column: Column, value: Any) -> None:
        self._upsert_values[column] = value

    def put_where_value(self, column: Column, value: Any) -> None:
        self._where_values[column] = value

    def is_empty(self) -> bool:
        return not self._upsert_values and not self._where_values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PersistentValues):
            return NotImplemented
        return (
            self._upsert_values == other._upsert_values
            and self._where_values == other._where_values
        )

    def __repr__(self) -> str:
        upsert = {str(c): v for c, v in self._upsert_values.items()}
        where = {str(c): v for c, v in self._where_values.items()}
        return f"PersistentValues(upsert={upsert!r}, where={where!r})"
