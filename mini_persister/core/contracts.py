"""Core port contracts implemented by adapters and callers."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, List, Optional, Protocol, runtime_checkable


class DialectPort(Protocol):
    """Dialect behavior required by DDL and DML generation."""

    name: str
    paramstyle: str
    supports_returning: bool
    supports_sequences: bool

    def q(self, ident: str) -> str: ...

    def placeholder(self, position: int) -> str: ...

    def sql_type(self, python_type: Any) -> Optional[str]: ...

    def auto_pk_sql(self, pk_name: str, python_type: Any) -> str: ...

    def returning_clause(self, pk_name: str) -> str: ...

    def sequence_sql(self, name: str, start: int = 1, increment: int = 1) -> str: ...

    def get_lastrowid(self, cursor: Any) -> Optional[Any]: ...


class ConnectorPort(Protocol):
    """Hands out one DB-API connection per operation."""

    def connection(self) -> AbstractContextManager[Any]: ...


@runtime_checkable
class DDLParticipant(Protocol):
    """Contributes schema statements beyond entity tables."""

    def generate_create_scripts(self) -> List[str]: ...
