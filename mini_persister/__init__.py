"""Mapping-strategy persistence over DB-API connections."""

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all
from .ports import (
    Dialect,
    DriverConnector,
    MySQLDialect,
    PoolConnector,
    PostgresDialect,
    SQLiteDialect,
    SingleConnectionConnector,
)

__all__ = [
    *_core_all,
    "Dialect",
    "DriverConnector",
    "MySQLDialect",
    "PoolConnector",
    "PostgresDialect",
    "SQLiteDialect",
    "SingleConnectionConnector",
]

__version__ = "0.1.0"
