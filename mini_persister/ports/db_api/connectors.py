"""Connection providers handing one DB-API connection to each operation."""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

logger = logging.getLogger(__name__)


class DriverConnector:
    """Opens a new connection for every operation and closes it afterwards."""

    def __init__(self, connect: Callable[..., Any], *connect_args: Any, **connect_kwargs: Any):
        self._connect = connect
        self._connect_args = connect_args
        self._connect_kwargs = connect_kwargs

    @contextlib.contextmanager
    def connection(self) -> Iterator[Any]:
        conn = self._connect(*self._connect_args, **self._connect_kwargs)
        try:
            yield conn
        finally:
            _close_connection(conn)


class SingleConnectionConnector:
    """Shares one caller-owned connection; never closes it.

    Useful for private in-memory SQLite databases, which exist only as long
    as their one connection. Not safe for concurrent callers.
    """

    def __init__(self, conn: Any):
        self.conn = conn

    @contextlib.contextmanager
    def connection(self) -> Iterator[Any]:
        yield self.conn


class PoolConnector:
    """Small fixed-size, thread-safe pool of DB-API connections.

    Released connections that are still inside a transaction are rolled back
    before they go back to the idle list.
    """

    def __init__(
        self,
        connect: Callable[..., Any],
        *connect_args: Any,
        max_size: int = 5,
        **connect_kwargs: Any,
    ):
        if max_size < 1:
            raise ValueError("max_size must be >= 1.")
        if max_size > 1 and _is_private_sqlite_memory(connect, connect_args, connect_kwargs):
            raise ValueError(
                "PoolConnector detected sqlite private in-memory database with max_size > 1. "
                "Use max_size=1, or a shared-memory URI "
                '(e.g. "file:persister?mode=memory&cache=shared", uri=True).'
            )

        self._connect = connect
        self._connect_args = connect_args
        self._connect_kwargs = connect_kwargs
        self._max_size = max_size

        self._idle: list[Any] = []
        self._borrowed_ids: set[int] = set()
        self._size = 0
        self._closed = False
        self._condition = threading.Condition()

    @property
    def max_size(self) -> int:
        return self._max_size

    def acquire(self, timeout: float | None = None) -> Any:
        """Borrow one connection from the pool."""

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while True:
                self._ensure_open()
                if self._idle:
                    conn = self._idle.pop()
                    self._borrowed_ids.add(id(conn))
                    return conn
                if self._size < self._max_size:
                    self._size += 1
                    break
                if deadline is None:
                    self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("Timed out waiting for a pooled DB connection.")
                self._condition.wait(remaining)

        try:
            conn = self._connect(*self._connect_args, **self._connect_kwargs)
        except BaseException:
            with self._condition:
                self._size -= 1
                self._condition.notify()
            raise

        with self._condition:
            self._borrowed_ids.add(id(conn))
        logger.debug("Opened pooled connection %d/%d", self._size, self._max_size)
        return conn

    def release(self, conn: Any) -> None:
        """Return one borrowed connection to the pool."""

        with self._condition:
            if id(conn) not in self._borrowed_ids:
                raise ValueError("Connection was not acquired from this pool or already released.")
            self._borrowed_ids.remove(id(conn))

        keep = True
        try:
            if _in_transaction(conn):
                conn.rollback()
        except Exception:
            logger.warning("Discarding pooled connection that failed to roll back", exc_info=True)
            keep = False

        with self._condition:
            if self._closed or not keep:
                self._size -= 1
            else:
                self._idle.append(conn)
                conn = None
            self._condition.notify()

        if conn is not None:
            _close_connection(conn)

    @contextlib.contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[Any]:
        """Borrow and auto-release one connection with a context manager."""

        conn = self.acquire(timeout=timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close all idle pooled connections and prevent future acquire."""

        with self._condition:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._size -= len(idle)
            self._condition.notify_all()

        for conn in idle:
            _close_connection(conn)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("PoolConnector is closed.")


def _close_connection(conn: Any) -> None:
    close = getattr(conn, "close", None)
    if callable(close):
        close()


def _in_transaction(conn: Any) -> bool:
    in_tx = getattr(conn, "in_transaction", None)
    if isinstance(in_tx, bool):
        return in_tx

    info = getattr(conn, "info", None)
    tx_status = getattr(info, "transaction_status", None)
    if tx_status is not None:
        # psycopg3: 0 = idle.
        return tx_status != 0

    status = getattr(conn, "status", None)
    if status is not None and "psycopg2" in type(conn).__module__.lower():
        # psycopg2: STATUS_READY == 1 means idle.
        return status != 1

    return False


def _is_private_sqlite_memory(
    connect: Callable[..., Any],
    connect_args: tuple[Any, ...],
    connect_kwargs: dict[str, Any],
) -> bool:
    module_name = getattr(connect, "__module__", "") or ""
    if not module_name.lstrip("_").startswith("sqlite3"):
        return False
    database = connect_args[0] if connect_args else connect_kwargs.get("database")
    if not isinstance(database, str):
        return False
    if database == ":memory:":
        return True
    lowered = database.lower()
    return (
        bool(connect_kwargs.get("uri"))
        and lowered.startswith("file:")
        and ("mode=memory" in lowered or lowered.startswith("file::memory:"))
        and "cache=shared" not in lowered
    )
