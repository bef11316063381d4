"""Parameterized INSERT/UPDATE/DELETE/SELECT generation.

Operations are reusable templates: `sql` holds positional placeholders and
`upsert_indexes`/`where_indexes` map each column to its parameter position,
so binding a `PersistentValues` is a plain lookup per position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .contracts import DialectPort
from .rows import RowIterator
from .structure import Column, Table
from .types import PositionalParams
from .values import PersistentValues


@dataclass(frozen=True)
class SQLOperation:
    """Literal SQL text plus the column → position maps used to bind it."""

    sql: str
    upsert_indexes: Mapping[Column, int] = field(default_factory=dict)
    where_indexes: Mapping[Column, int] = field(default_factory=dict)

    @property
    def parameter_count(self) -> int:
        return len(self.upsert_indexes) + len(self.where_indexes)

    def bind(self, values: PersistentValues) -> PositionalParams:
        """Return positional parameters for `values`.

        Raises:
            ValueError: If a column the statement needs has no value.
        """

        params: List[Any] = [None] * self.parameter_count
        _fill(params, self.upsert_indexes, values.upsert_values, "upsert")
        _fill(params, self.where_indexes, values.where_values, "where")
        return tuple(params)


class WriteOperation(SQLOperation):
    """Operation whose execution reports an affected row count."""

    def execute(self, cursor: Any, values: PersistentValues) -> int:
        cursor.execute(self.sql, self.bind(values))
        return cursor.rowcount


@dataclass(frozen=True)
class InsertOperation(WriteOperation):
    returning: Optional[Column] = None


class UpdateOperation(WriteOperation):
    pass


class DeleteOperation(WriteOperation):
    pass


@dataclass(frozen=True)
class SelectOperation(SQLOperation):
    columns: Sequence[Column] = ()

    def execute(self, cursor: Any, values: PersistentValues) -> RowIterator:
        cursor.execute(self.sql, self.bind(values))
        return RowIterator(cursor, [column.name for column in self.columns])


class DMLGenerator:
    """Builds DML operations; parameter order follows the given column order."""

    def __init__(self, dialect: DialectPort):
        self.dialect = dialect

    def build_insert(
        self,
        columns: Iterable[Column],
        *,
        returning: Optional[Column] = None,
    ) -> InsertOperation:
        """INSERT over every non-generated column in `columns`."""

        ordered = [c for c in _ordered(columns) if not c.generated]
        if not ordered:
            raise ValueError("Cannot build an INSERT without any writable column.")
        table = _single_table(ordered)

        d = self.dialect
        column_sql = ", ".join(d.q(c.name) for c in ordered)
        placeholders = ", ".join(d.placeholder(i) for i in range(len(ordered)))
        sql = f"INSERT INTO {d.q(table)} ({column_sql}) VALUES ({placeholders})"
        if returning is not None and d.supports_returning:
            sql += d.returning_clause(returning.name)
        else:
            returning = None
        return InsertOperation(
            sql=sql,
            upsert_indexes={c: i for i, c in enumerate(ordered)},
            returning=returning,
        )

    def build_update(
        self,
        columns: Iterable[Column],
        where_columns: Iterable[Column],
    ) -> UpdateOperation:
        """UPDATE ... SET over `columns` WHERE over `where_columns`.

        The primary key is not filtered out here; callers pass the columns
        they want rewritten.
        """

        ordered = _ordered(columns)
        if not ordered:
            raise ValueError("Cannot build an UPDATE without any column to set.")
        where = _ordered(where_columns)
        table = _single_table([*ordered, *where])

        d = self.dialect
        set_sql = ", ".join(f"{d.q(c.name)} = {d.placeholder(i)}" for i, c in enumerate(ordered))
        where_sql, where_indexes = self._where(where, offset=len(ordered))
        return UpdateOperation(
            sql=f"UPDATE {d.q(table)} SET {set_sql}{where_sql}",
            upsert_indexes={c: i for i, c in enumerate(ordered)},
            where_indexes=where_indexes,
        )

    def build_delete(self, table: Table, where_columns: Iterable[Column]) -> DeleteOperation:
        where = _ordered(where_columns)
        _single_table(where, expected=table.name)
        where_sql, where_indexes = self._where(where, offset=0)
        return DeleteOperation(
            sql=f"DELETE FROM {self.dialect.q(table.name)}{where_sql}",
            where_indexes=where_indexes,
        )

    def build_select(
        self,
        table: Table,
        columns: Iterable[Column],
        where_columns: Iterable[Column],
    ) -> SelectOperation:
        projected = _ordered(columns)
        if not projected:
            raise ValueError("Cannot build a SELECT without any projected column.")
        where = _ordered(where_columns)
        _single_table([*projected, *where], expected=table.name)

        d = self.dialect
        column_sql = ", ".join(d.q(c.name) for c in projected)
        where_sql, where_indexes = self._where(where, offset=0)
        return SelectOperation(
            sql=f"SELECT {column_sql} FROM {d.q(table.name)}{where_sql}",
            where_indexes=where_indexes,
            columns=tuple(projected),
        )

    def _where(self, where: List[Column], *, offset: int) -> tuple[str, dict[Column, int]]:
        if not where:
            return "", {}
        d = self.dialect
        predicates = " AND ".join(
            f"{d.q(c.name)} = {d.placeholder(offset + i)}" for i, c in enumerate(where)
        )
        return f" WHERE {predicates}", {c: offset + i for i, c in enumerate(where)}


def _ordered(columns: Iterable[Column]) -> List[Column]:
    return list(dict.fromkeys(columns))


def _single_table(columns: Sequence[Column], *, expected: Optional[str] = None) -> str:
    tables = {c.table for c in columns}
    if expected is not None:
        tables.add(expected)
    if len(tables) != 1:
        names = ", ".join(sorted(tables))
        raise ValueError(f"Columns must belong to exactly one table, got: {names}.")
    return tables.pop()


def _fill(
    params: List[Any],
    indexes: Mapping[Column, int],
    source: Mapping[Column, Any],
    kind: str,
) -> None:
    for column, position in indexes.items():
        if column not in source:
            raise ValueError(f"Missing {kind} value for column {column}.")
        params[position] = source[column]
