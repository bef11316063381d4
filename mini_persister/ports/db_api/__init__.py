"""DB-API connector and dialect exports."""

from .connectors import DriverConnector, PoolConnector, SingleConnectionConnector
from .dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect

__all__ = [
    "Dialect",
    "DriverConnector",
    "MySQLDialect",
    "PoolConnector",
    "PostgresDialect",
    "SQLiteDialect",
    "SingleConnectionConnector",
]
