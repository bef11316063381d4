"""Result rows read back from a query cursor."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Dict, List, Optional

from .types import RowMapping


class Row(Mapping[str, Any]):
    """Immutable snapshot of one result record, keyed by column name."""

    __slots__ = ("_content",)

    def __init__(self, content: RowMapping):
        self._content: Dict[str, Any] = dict(content)

    @property
    def content(self) -> Dict[str, Any]:
        """Copy of the row content."""

        return dict(self._content)

    def __getitem__(self, key: str) -> Any:
        return self._content[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._content)

    def __len__(self) -> int:
        return len(self._content)

    def __repr__(self) -> str:
        return f"Row({self._content!r})"


class RowIterator(Iterator[Row]):
    """Forward-only, one-shot iteration over a DB-API cursor.

    Column names come from `cursor.description`. Rows that are already
    mappings (e.g. `sqlite3.Row` or dict cursors) are copied as-is.
    The iterator is only valid while its cursor is open.
    """

    def __init__(self, cursor: Any, column_names: Optional[List[str]] = None):
        self._cursor = cursor
        self._names = column_names
        self._exhausted = False

    def _column_names(self) -> List[str]:
        if self._names is None:
            desc = getattr(self._cursor, "description", None)
            if not desc:
                raise TypeError("Cursor has no description; cannot map rows to names.")
            self._names = [d[0] for d in desc]
        return self._names

    def __next__(self) -> Row:
        if self._exhausted:
            raise StopIteration
        raw = self._cursor.fetchone()
        if raw is None:
            self._exhausted = True
            raise StopIteration
        return self._to_row(raw)

    def _to_row(self, raw: Any) -> Row:
        if isinstance(raw, Mapping):
            return Row(raw)
        if isinstance(raw, (tuple, list)):
            return Row(dict(zip(self._column_names(), raw)))
        keys = getattr(raw, "keys", None)
        if callable(keys):
            return Row({key: raw[key] for key in keys()})
        raise TypeError(f"Unsupported row type: {type(raw)}")
