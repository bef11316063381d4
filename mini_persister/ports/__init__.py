"""Public port exports for concrete adapter implementations."""

from .db_api import (
    Dialect,
    DriverConnector,
    MySQLDialect,
    PoolConnector,
    PostgresDialect,
    SQLiteDialect,
    SingleConnectionConnector,
)

__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgresDialect",
    "MySQLDialect",
    "DriverConnector",
    "SingleConnectionConnector",
    "PoolConnector",
]
