"""CREATE TABLE generation and built-in DDL participants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .contracts import DialectPort
from .errors import MappingConfigurationError, MissingTypeMappingError
from .structure import Column, Table


class DDLTableGenerator:
    """Builds `CREATE TABLE` statements from a table and a dialect."""

    def __init__(self, dialect: DialectPort):
        self.dialect = dialect

    def generate_create_table(self, table: Table, *, if_not_exists: bool = False) -> str:
        """Build one `CREATE TABLE` statement.

        Raises:
            MissingTypeMappingError: If the dialect has no SQL type for one of
                the table's columns.
        """

        d = self.dialect
        definitions = [self.column_sql(column) for column in table.columns]
        if table.primary_key is not None:
            definitions.append(f"PRIMARY KEY ({d.q(table.primary_key.name)})")
        prefix = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
        return f"{prefix} {d.q(table.name)} (" + ", ".join(definitions) + ")"

    def column_sql(self, column: Column) -> str:
        """Build one column definition SQL fragment."""

        d = self.dialect
        if column.generated:
            return d.auto_pk_sql(column.name, column.python_type)

        sql_type = d.sql_type(column.python_type)
        if sql_type is None:
            raise MissingTypeMappingError(column, d.name)

        parts = [d.q(column.name), sql_type]
        if not column.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)


@dataclass(frozen=True)
class IndexParticipant:
    """Creates one (optionally unique) index once entity tables exist."""

    dialect: DialectPort
    table: Table
    columns: Sequence[str]
    unique: bool = False
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.columns:
            raise MappingConfigurationError("An index needs at least one column.")
        for column in self.columns:
            # raises on unknown column names
            self.table.column(column)

    @property
    def index_name(self) -> str:
        if self.name:
            return self.name
        prefix = "uidx" if self.unique else "idx"
        return "_".join([prefix, self.table.name, *self.columns])

    def generate_create_scripts(self) -> List[str]:
        d = self.dialect
        prefix = "CREATE UNIQUE INDEX" if self.unique else "CREATE INDEX"
        columns_sql = ", ".join(d.q(column) for column in self.columns)
        return [f"{prefix} {d.q(self.index_name)} ON {d.q(self.table.name)} ({columns_sql})"]


@dataclass(frozen=True)
class SequenceParticipant:
    """Creates a database sequence, for dialects that have them."""

    dialect: DialectPort
    name: str
    start: int = 1
    increment: int = 1

    def generate_create_scripts(self) -> List[str]:
        return [self.dialect.sequence_sql(self.name, self.start, self.increment)]
