"""Concrete SQL dialect implementations for DB-API adapters."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, ClassVar, Dict, Mapping, Optional, get_origin


class Dialect:
    """Base dialect: identifier quoting, placeholders and the type mapping.

    `type_mapping` maps Python value types to SQL type names. Lookups walk
    the value type's MRO, so `str`-based enums resolve to the `str` entry.
    Instances may extend or replace entries with `type_overrides`.
    """

    name: str = "generic"
    paramstyle: str = "qmark"
    quote_char: str = '"'
    supports_returning: bool = False
    supports_sequences: bool = False
    type_mapping: ClassVar[Dict[Any, str]] = {
        bool: "BOOLEAN",
        int: "INTEGER",
        float: "REAL",
        Decimal: "NUMERIC",
        str: "TEXT",
        bytes: "BLOB",
        datetime: "TIMESTAMP",
        date: "DATE",
        time: "TIME",
        dict: "TEXT",
        list: "TEXT",
    }

    def __init__(self, type_overrides: Optional[Mapping[Any, str]] = None):
        self._types: Dict[Any, str] = dict(self.type_mapping)
        if type_overrides:
            self._types.update(type_overrides)

    def q(self, ident: str) -> str:
        """Quote SQL identifier."""

        return f"{self.quote_char}{ident}{self.quote_char}"

    def placeholder(self, position: int) -> str:
        """Return the placeholder for a 0-based positional parameter."""

        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "format":
            return "%s"
        if self.paramstyle == "numeric":
            return f":{position + 1}"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def sql_type(self, python_type: Any) -> Optional[str]:
        """Return the SQL type name for a value type, or `None` if unmapped."""

        python_type = get_origin(python_type) or python_type
        if python_type in self._types:
            return self._types[python_type]
        for base in getattr(python_type, "__mro__", ())[1:]:
            if base is object:
                break
            if base in self._types:
                return self._types[base]
        return None

    def auto_pk_sql(self, pk_name: str, python_type: Any) -> str:
        """Return the column definition of a database-generated key.

        The `PRIMARY KEY` constraint itself is emitted separately.
        """

        return f"{self.q(pk_name)} INTEGER NOT NULL"

    def returning_clause(self, pk_name: str) -> str:
        """Return `RETURNING` clause when dialect supports it."""

        if self.supports_returning:
            return f" RETURNING {self.q(pk_name)}"
        return ""

    def sequence_sql(self, name: str, start: int = 1, increment: int = 1) -> str:
        if not self.supports_sequences:
            raise NotImplementedError(f"Dialect {self.name!r} does not support sequences.")
        return f"CREATE SEQUENCE {self.q(name)} START WITH {start} INCREMENT BY {increment}"

    def get_lastrowid(self, cursor: Any) -> Optional[Any]:
        """Extract `lastrowid` from DB-API cursor when available."""

        return getattr(cursor, "lastrowid", None)


class SQLiteDialect(Dialect):
    """SQLite dialect (`?` parameters, supports `RETURNING`).

    An `INTEGER` column declared as the table's primary key is a rowid alias,
    so generated keys need no extra keyword.
    """

    name = "sqlite"
    paramstyle = "qmark"
    quote_char = '"'
    supports_returning = True


class PostgresDialect(Dialect):
    """PostgreSQL dialect (`%s` positional parameters)."""

    name = "postgres"
    paramstyle = "format"
    quote_char = '"'
    supports_returning = True
    supports_sequences = True
    type_mapping = {
        **Dialect.type_mapping,
        int: "BIGINT",
        float: "DOUBLE PRECISION",
        bytes: "BYTEA",
    }

    def auto_pk_sql(self, pk_name: str, python_type: Any) -> str:
        return f"{self.q(pk_name)} BIGSERIAL"


class MySQLDialect(Dialect):
    """MySQL dialect (`%s` positional parameters, no `RETURNING`)."""

    name = "mysql"
    paramstyle = "format"
    quote_char = "`"
    supports_returning = False
    type_mapping = {
        **Dialect.type_mapping,
        int: "BIGINT",
        float: "DOUBLE",
        Decimal: "DECIMAL(38, 10)",
        str: "VARCHAR(255)",
        datetime: "DATETIME",
    }

    def auto_pk_sql(self, pk_name: str, python_type: Any) -> str:
        return f"{self.q(pk_name)} BIGINT AUTO_INCREMENT"
