"""Exception taxonomy for mapping, generation and execution failures."""

from __future__ import annotations

from typing import Any, Optional


class PersistenceError(Exception):
    """Base class for all errors raised by this package."""


class MappingConfigurationError(PersistenceError, ValueError):
    """Raised when tables, columns or strategies are declared inconsistently."""


class UnmappedEntityError(MappingConfigurationError):
    """Raised when no mapping strategy is registered for an entity type."""

    def __init__(self, entity_type: type):
        super().__init__(f"Unmapped entity {entity_type.__qualname__}.")
        self.entity_type = entity_type


class MissingTypeMappingError(MappingConfigurationError, KeyError):
    """Raised when a dialect has no SQL type for a column's value type."""

    def __init__(self, column: Any, dialect_name: str):
        python_type = getattr(column, "python_type", None)
        type_name = getattr(python_type, "__qualname__", repr(python_type))
        message = (
            f"Dialect {dialect_name!r} has no SQL type for {type_name} "
            f"(column {column})."
        )
        super().__init__(message)
        self.column = column
        self.dialect_name = dialect_name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class UnsupportedIdentityError(PersistenceError, NotImplementedError):
    """Raised when identity is requested from a strategy that has none."""


class NonReversibleAccessorError(PersistenceError, TypeError):
    """Raised when an accessor has no writable counterpart."""


class ExecutionError(PersistenceError, RuntimeError):
    """Wraps a driver failure raised while running one statement."""

    def __init__(self, sql: str, cause: BaseException):
        super().__init__(f"Failed to execute {sql!r}: {cause}")
        self.sql = sql
        self.cause: Optional[BaseException] = cause
