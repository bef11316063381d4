from __future__ import annotations

import os
import sqlite3
import tempfile
import threading
import unittest
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from mini_persister.ports.db_api.connectors import (
    DriverConnector,
    PoolConnector,
    SingleConnectionConnector,
)
from mini_persister.ports.db_api.dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect


class Color(str, Enum):
    RED = "red"


class _DummyCursor:
    def __init__(self, lastrowid=None):  # noqa: ANN001
        self.lastrowid = lastrowid


class _InvalidDialect(Dialect):
    paramstyle = "invalid"


class _FakeConn:
    def __init__(self, *, in_transaction: bool = False, fail_rollback: bool = False):
        self.in_transaction = in_transaction
        self.rollback_calls = 0
        self.close_calls = 0
        self._fail_rollback = fail_rollback

    def rollback(self) -> None:
        if self._fail_rollback:
            raise RuntimeError("rollback failed")
        self.rollback_calls += 1
        self.in_transaction = False

    def close(self) -> None:
        self.close_calls += 1


class DialectTests(unittest.TestCase):
    def test_quoting_and_placeholders(self) -> None:
        self.assertEqual(SQLiteDialect().q("name"), '"name"')
        self.assertEqual(MySQLDialect().q("name"), "`name`")
        self.assertEqual(SQLiteDialect().placeholder(3), "?")
        self.assertEqual(PostgresDialect().placeholder(0), "%s")
        with self.assertRaises(ValueError):
            _InvalidDialect().placeholder(0)

    def test_type_mapping(self) -> None:
        sqlite = SQLiteDialect()
        self.assertEqual(sqlite.sql_type(int), "INTEGER")
        self.assertEqual(sqlite.sql_type(bool), "BOOLEAN")
        self.assertEqual(sqlite.sql_type(Decimal), "NUMERIC")
        self.assertEqual(sqlite.sql_type(Color), "TEXT")
        self.assertEqual(sqlite.sql_type(list[str]), "TEXT")
        self.assertIsNone(sqlite.sql_type(object))

        postgres = PostgresDialect()
        self.assertEqual(postgres.sql_type(int), "BIGINT")
        self.assertEqual(postgres.sql_type(bytes), "BYTEA")
        self.assertEqual(postgres.sql_type(date), "DATE")

        self.assertEqual(MySQLDialect().sql_type(datetime), "DATETIME")
        self.assertEqual(MySQLDialect().sql_type(str), "VARCHAR(255)")

    def test_type_overrides_are_per_instance(self) -> None:
        dialect = PostgresDialect(type_overrides={dict: "JSONB"})
        self.assertEqual(dialect.sql_type(dict), "JSONB")
        self.assertEqual(PostgresDialect().sql_type(dict), "TEXT")

    def test_returning_and_sequences(self) -> None:
        self.assertEqual(SQLiteDialect().returning_clause("id"), ' RETURNING "id"')
        self.assertEqual(MySQLDialect().returning_clause("id"), "")
        self.assertEqual(
            PostgresDialect().sequence_sql("s", 5, 2),
            'CREATE SEQUENCE "s" START WITH 5 INCREMENT BY 2',
        )
        with self.assertRaises(NotImplementedError):
            MySQLDialect().sequence_sql("s")

    def test_get_lastrowid(self) -> None:
        self.assertEqual(SQLiteDialect().get_lastrowid(_DummyCursor(lastrowid=9)), 9)
        self.assertIsNone(SQLiteDialect().get_lastrowid(object()))


class DriverConnectorTests(unittest.TestCase):
    def test_connection_is_closed_after_use(self) -> None:
        opened: list[_FakeConn] = []

        def _factory() -> _FakeConn:
            conn = _FakeConn()
            opened.append(conn)
            return conn

        connector = DriverConnector(_factory)
        with connector.connection() as first:
            pass
        with self.assertRaises(RuntimeError):
            with connector.connection():
                raise RuntimeError("boom")

        self.assertEqual(len(opened), 2)
        self.assertIs(opened[0], first)
        self.assertEqual([conn.close_calls for conn in opened], [1, 1])

    def test_connect_arguments_are_forwarded(self) -> None:
        fd, db_path = tempfile.mkstemp(prefix="connector_", suffix=".db")
        os.close(fd)
        self.addCleanup(lambda: os.path.exists(db_path) and os.remove(db_path))

        connector = DriverConnector(sqlite3.connect, db_path, timeout=1)
        with connector.connection() as conn:
            conn.execute('CREATE TABLE "t" ("id" INTEGER)')
            conn.commit()
        with connector.connection() as conn:
            self.assertEqual(conn.execute('SELECT COUNT(*) FROM "t"').fetchone(), (0,))


class SingleConnectionConnectorTests(unittest.TestCase):
    def test_connection_is_shared_and_left_open(self) -> None:
        conn = _FakeConn()
        connector = SingleConnectionConnector(conn)
        with connector.connection() as first:
            pass
        with connector.connection() as second:
            pass
        self.assertIs(first, conn)
        self.assertIs(second, conn)
        self.assertEqual(conn.close_calls, 0)


class PoolConnectorTests(unittest.TestCase):
    def test_acquire_release_reuses_connection(self) -> None:
        created = 0

        def _factory() -> sqlite3.Connection:
            nonlocal created
            created += 1
            return sqlite3.connect(":memory:")

        pool = PoolConnector(_factory, max_size=1)
        first = pool.acquire()
        pool.release(first)
        second = pool.acquire()
        self.assertIs(first, second)
        pool.release(second)
        pool.close()
        self.assertEqual(created, 1)

    def test_max_size_zero_raises(self) -> None:
        with self.assertRaises(ValueError):
            PoolConnector(sqlite3.connect, ":memory:", max_size=0)

    def test_private_sqlite_memory_with_several_connections_raises(self) -> None:
        with self.assertRaises(ValueError):
            PoolConnector(sqlite3.connect, ":memory:", max_size=2)
        pool = PoolConnector(
            sqlite3.connect,
            "file:pool_shared?mode=memory&cache=shared",
            max_size=2,
            uri=True,
        )
        pool.close()

    def test_acquire_timeout_raises_when_pool_is_exhausted(self) -> None:
        pool = PoolConnector(sqlite3.connect, ":memory:", max_size=1)
        conn = pool.acquire()
        try:
            with self.assertRaises(TimeoutError):
                pool.acquire(timeout=0.01)
        finally:
            pool.release(conn)
            pool.close()

    def test_acquire_factory_error_does_not_poison_pool_state(self) -> None:
        calls = 0

        def _factory() -> _FakeConn:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("connect failed")
            return _FakeConn()

        pool = PoolConnector(_factory, max_size=1)
        with self.assertRaises(RuntimeError):
            pool.acquire()

        conn = pool.acquire()
        pool.release(conn)
        pool.close()
        self.assertEqual(calls, 2)

    def test_release_rolls_back_open_transaction(self) -> None:
        conn = _FakeConn(in_transaction=True)
        pool = PoolConnector(lambda: conn, max_size=1)

        with pool.connection() as borrowed:
            self.assertIs(borrowed, conn)
        self.assertEqual(conn.rollback_calls, 1)
        self.assertEqual(conn.close_calls, 0)

        with pool.connection() as borrowed:
            self.assertIs(borrowed, conn)
        pool.close()
        self.assertEqual(conn.close_calls, 1)

    def test_failed_rollback_discards_the_connection(self) -> None:
        broken = _FakeConn(in_transaction=True, fail_rollback=True)
        fresh = _FakeConn()
        connections = [broken, fresh]
        pool = PoolConnector(lambda: connections.pop(0), max_size=1)

        with pool.connection():
            pass
        self.assertEqual(broken.close_calls, 1)

        with pool.connection() as conn:
            self.assertIs(conn, fresh)
        pool.close()

    def test_release_of_foreign_connection_raises(self) -> None:
        pool = PoolConnector(_FakeConn, max_size=1)
        with self.assertRaises(ValueError):
            pool.release(_FakeConn())
        conn = pool.acquire()
        pool.release(conn)
        with self.assertRaises(ValueError):
            pool.release(conn)
        pool.close()

    def test_acquire_after_close_raises(self) -> None:
        pool = PoolConnector(sqlite3.connect, ":memory:", max_size=1)
        pool.close()
        with self.assertRaises(RuntimeError):
            pool.acquire()

    def test_waiting_acquire_is_unblocked_when_pool_closes(self) -> None:
        pool = PoolConnector(_FakeConn, max_size=1)
        conn = pool.acquire()
        errors: list[type[BaseException]] = []

        def _waiter() -> None:
            try:
                pool.acquire(timeout=1)
            except BaseException as exc:  # noqa: BLE001
                errors.append(type(exc))

        thread = threading.Thread(target=_waiter)
        thread.start()
        pool.close()
        thread.join(timeout=2)

        self.assertFalse(thread.is_alive())
        self.assertEqual(errors, [RuntimeError])
        pool.release(conn)
        self.assertEqual(conn.close_calls, 1)


if __name__ == "__main__":
    unittest.main()
