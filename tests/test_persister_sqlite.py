from __future__ import annotations

import os
import sqlite3
import tempfile
import unittest
from dataclasses import dataclass, field
from typing import Any, Optional

from mini_persister import (
    ExecutionError,
    IndexedMapMappingStrategy,
    IndexParticipant,
    MappingConfigurationError,
    MissingTypeMappingError,
    PersistenceContext,
    Persister,
    PoolConnector,
    SequenceIdPolicy,
    SingleConnectionConnector,
    SQLiteDialect,
    Table,
    UnmappedEntityError,
    UnsupportedIdentityError,
)


@dataclass
class T:
    id: Optional[int] = field(default=None, metadata={"pk": True})
    name: Optional[str] = None
    age: Optional[int] = None


@dataclass
class AutoUser:
    id: Optional[int] = field(default=None, metadata={"pk": True, "auto": True})
    email: str = ""


@dataclass
class KeyOnly:
    id: Optional[int] = field(default=None, metadata={"pk": True})


class Point:
    pass


@dataclass
class Shape:
    id: Optional[int] = field(default=None, metadata={"pk": True})
    origin: Optional[Point] = None


class Unregistered:
    id = 1


class _NoReturningSQLiteDialect(SQLiteDialect):
    supports_returning = False


class _RecordingCursor:
    def __init__(self, cursor: sqlite3.Cursor, log: list[tuple[str, tuple[Any, ...]]]):
        self._cursor = cursor
        self._log = log

    def execute(self, sql: str, params: Any = None) -> Any:
        self._log.append((sql, tuple(params or ())))
        if params is None:
            return self._cursor.execute(sql)
        return self._cursor.execute(sql, params)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cursor, name)


class _RecordingConnection:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.statements: list[tuple[str, tuple[Any, ...]]] = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def cursor(self) -> _RecordingCursor:
        return _RecordingCursor(self.conn.cursor(), self.statements)

    def commit(self) -> None:
        self.commit_calls += 1
        self.conn.commit()

    def rollback(self) -> None:
        self.rollback_calls += 1
        self.conn.rollback()


def _table_names(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type IN ('table', 'index') ORDER BY name"
    ).fetchall()
    return [row[0] for row in rows]


class PersisterSQLiteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.raw = sqlite3.connect(":memory:")
        self.addCleanup(self.raw.close)
        self.conn = _RecordingConnection(self.raw)
        self.context = PersistenceContext(SingleConnectionConnector(self.conn), SQLiteDialect())
        self.context.register_dataclass(T, SequenceIdPolicy())
        self.persister = Persister(self.context)

    def _deploy(self) -> None:
        self.persister.deploy_ddl()
        self.conn.statements.clear()
        self.conn.commit_calls = 0

    def test_deploy_ddl_creates_tables_then_participants(self) -> None:
        strategy = self.context.register_dataclass(AutoUser)
        self.persister.add(
            IndexParticipant(SQLiteDialect(), strategy.target_table, ["email"], unique=True)
        )

        statements = self.persister.deploy_ddl()

        self.assertEqual(
            statements,
            [
                'CREATE TABLE "t" ("id" INTEGER NOT NULL, "name" TEXT, "age" INTEGER, '
                'PRIMARY KEY ("id"))',
                'CREATE TABLE "autouser" ("id" INTEGER NOT NULL, "email" TEXT NOT NULL, '
                'PRIMARY KEY ("id"))',
                'CREATE UNIQUE INDEX "uidx_autouser_email" ON "autouser" ("email")',
            ],
        )
        self.assertEqual([sql for sql, _ in self.conn.statements], statements)
        self.assertEqual(_table_names(self.raw), ["autouser", "t", "uidx_autouser_email"])
        self.assertTrue(self.context.frozen)

    def test_deploy_ddl_fails_before_executing_on_missing_type_mapping(self) -> None:
        self.context.register_dataclass(Shape)

        with self.assertRaises(MissingTypeMappingError):
            self.persister.deploy_ddl()
        self.assertEqual(self.conn.statements, [])
        self.assertEqual(_table_names(self.raw), [])

    def test_deploy_ddl_twice_wraps_the_driver_error(self) -> None:
        self.persister.deploy_ddl()

        with self.assertLogs("mini_persister", level="ERROR"):
            with self.assertRaises(ExecutionError) as ctx:
                self.persister.deploy_ddl()
        self.assertIsInstance(ctx.exception.cause, sqlite3.OperationalError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.cause)
        self.assertTrue(ctx.exception.sql.startswith('CREATE TABLE "t"'))

    def test_persist_inserts_then_updates(self) -> None:
        self._deploy()
        entity = T(name="Ann", age=30)

        self.assertIs(self.persister.persist(entity), entity)
        self.assertEqual(entity.id, 1)

        entity.age = 31
        self.persister.persist(entity)

        self.assertEqual(
            self.conn.statements,
            [
                ('INSERT INTO "t" ("id", "name", "age") VALUES (?, ?, ?)', (1, "Ann", 30)),
                ('UPDATE "t" SET "name" = ?, "age" = ? WHERE "id" = ?', ("Ann", 31, 1)),
            ],
        )
        self.assertEqual(self.raw.execute('SELECT "id", "name", "age" FROM "t"').fetchall(), [(1, "Ann", 31)])
        self.assertEqual(self.conn.commit_calls, 2)

    def test_select_round_trip(self) -> None:
        self._deploy()
        self.persister.persist(T(name="a", age=30))
        self.persister.persist(T(name="b"))

        self.assertEqual(self.persister.select(T, 1), T(1, "a", 30))
        self.assertEqual(self.persister.select(T, 2), T(2, "b", None))
        self.assertIsNone(self.persister.select(T, 99))
        self.assertEqual(
            self.conn.statements[-1],
            ('SELECT "id", "name", "age" FROM "t" WHERE "id" = ?', (99,)),
        )

    def test_select_with_null_id_fails_before_any_statement(self) -> None:
        self._deploy()
        with self.assertRaisesRegex(ValueError, "null id"):
            self.persister.select(T, None)
        self.assertEqual(self.conn.statements, [])

    def test_unmapped_entity_is_rejected(self) -> None:
        with self.assertRaises(UnmappedEntityError) as ctx:
            self.persister.persist(Unregistered())
        self.assertIn("Unregistered", str(ctx.exception))
        with self.assertRaises(UnmappedEntityError):
            self.persister.select(Unregistered, 1)
        with self.assertRaises(UnmappedEntityError):
            self.persister.delete(Unregistered())

    def test_delete(self) -> None:
        self._deploy()
        entity = self.persister.persist(T(name="a"))

        self.assertEqual(self.persister.delete(entity), 1)
        self.assertIsNone(self.persister.select(T, entity.id))
        self.assertEqual(self.conn.statements[0][0], 'INSERT INTO "t" ("id", "name", "age") VALUES (?, ?, ?)')
        self.assertEqual(self.conn.statements[1], ('DELETE FROM "t" WHERE "id" = ?', (1,)))

        self.assertEqual(self.persister.delete(T(name="never stored")), 0)
        self.assertEqual(self.persister.delete(T(id=42)), 0)

    def test_update_writes_only_the_difference(self) -> None:
        self._deploy()
        entity = self.persister.persist(T(name="a", age=1))
        self.conn.statements.clear()

        changed = T(entity.id, "a", 2)
        self.assertEqual(self.persister.update(changed, entity), 1)
        self.assertEqual(
            self.conn.statements,
            [('UPDATE "t" SET "age" = ? WHERE "id" = ?', (2, 1))],
        )

        self.assertEqual(self.persister.update(changed, T(entity.id, "a", 2)), 0)
        self.assertEqual(len(self.conn.statements), 1)

    def test_update_of_key_only_entity_is_skipped(self) -> None:
        self.context.register_dataclass(KeyOnly, SequenceIdPolicy())
        self._deploy()
        entity = self.persister.persist(KeyOnly())
        self.conn.statements.clear()

        self.persister.persist(entity)
        self.assertEqual(self.conn.statements, [])

    def test_failed_statement_rolls_back_and_keeps_connection_usable(self) -> None:
        self._deploy()
        self.persister.persist(T(name="a"))
        duplicate = T(name="b")
        self.context.mapping_strategy(T).id_policy = SequenceIdPolicy(start=1)

        with self.assertLogs("mini_persister.core.persister", level="ERROR") as logs:
            with self.assertRaises(ExecutionError) as ctx:
                self.persister.persist(duplicate)
        self.assertIsInstance(ctx.exception.cause, sqlite3.IntegrityError)
        self.assertIn("Statement failed", logs.output[0])
        self.assertEqual(self.conn.rollback_calls, 1)

        self.assertEqual(self.persister.select(T, 1), T(1, "a", None))

    def test_context_is_frozen_once_the_persister_is_used(self) -> None:
        self._deploy()
        with self.assertRaises(MappingConfigurationError):
            self.context.register_dataclass(AutoUser)
        with self.assertRaises(MappingConfigurationError):
            self.persister.add(IndexParticipant(SQLiteDialect(), Table.from_dataclass(T), ["name"]))

    def test_registration_errors(self) -> None:
        with self.assertRaises(MappingConfigurationError):
            self.context.register_dataclass(T)
        with self.assertRaises(TypeError):
            self.context.add_ddl_participant(object())  # type: ignore[arg-type]

    def test_map_strategy_has_no_identity_to_persist(self) -> None:
        self.context.register(dict, IndexedMapMappingStrategy(Table("bag"), "v", 2, str))
        with self.assertRaises(UnsupportedIdentityError):
            self.persister.persist({0: "a"})

    def test_keyless_strategy_cannot_be_selected_deleted_or_updated(self) -> None:
        self.context.register(dict, IndexedMapMappingStrategy(Table("bag"), "v", 2, str))
        self._deploy()

        with self.assertRaisesRegex(UnsupportedIdentityError, "dict .*'bag'.* no primary key"):
            self.persister.select(dict, 1)
        with self.assertRaises(UnsupportedIdentityError):
            self.persister.delete({0: "a"})
        with self.assertRaises(UnsupportedIdentityError):
            self.persister.update({0: "b"}, {0: "a"})
        self.assertEqual(self.conn.statements, [])

    def test_update_without_modified_entity_clears_the_row(self) -> None:
        self._deploy()
        stored = self.persister.persist(T(name="a", age=3))
        self.conn.statements.clear()

        self.assertEqual(self.persister.update(None, stored), 0)
        self.assertEqual(self.persister.update(None, stored, all_columns=True), 1)
        self.assertEqual(
            self.conn.statements,
            [('UPDATE "t" SET "name" = ?, "age" = ? WHERE "id" = ?', (None, None, 1))],
        )
        self.assertEqual(self.persister.select(T, 1), T(1, None, None))

        with self.assertRaises(ValueError):
            self.persister.update(None, None)



class PersisterGeneratedKeyTests(unittest.TestCase):
    def _persister(self, dialect: SQLiteDialect) -> tuple[Persister, sqlite3.Connection]:
        conn = sqlite3.connect(":memory:")
        self.addCleanup(conn.close)
        context = PersistenceContext(SingleConnectionConnector(conn), dialect)
        context.register_dataclass(AutoUser)
        persister = Persister(context)
        persister.deploy_ddl()
        return persister, conn

    @unittest.skipUnless(sqlite3.sqlite_version_info >= (3, 35, 0), "RETURNING needs SQLite 3.35")
    def test_generated_key_is_read_back_with_returning(self) -> None:
        persister, _ = self._persister(SQLiteDialect())
        first = persister.persist(AutoUser(email="a@x"))
        second = persister.persist(AutoUser(email="b@x"))
        self.assertEqual((first.id, second.id), (1, 2))
        self.assertEqual(persister.select(AutoUser, 2), AutoUser(2, "b@x"))

    def test_generated_key_is_read_back_with_lastrowid(self) -> None:
        persister, conn = self._persister(_NoReturningSQLiteDialect())
        user = persister.persist(AutoUser(email="a@x"))
        self.assertEqual(user.id, 1)

        user.email = "c@x"
        persister.persist(user)
        self.assertEqual(conn.execute('SELECT "id", "email" FROM "autouser"').fetchall(), [(1, "c@x")])


class PersisterPoolTests(unittest.TestCase):
    def test_persister_over_pooled_file_database(self) -> None:
        fd, db_path = tempfile.mkstemp(prefix="persister_pool_", suffix=".db")
        os.close(fd)
        self.addCleanup(lambda: os.path.exists(db_path) and os.remove(db_path))

        pool = PoolConnector(sqlite3.connect, db_path, max_size=2)
        self.addCleanup(pool.close)
        context = PersistenceContext(pool, SQLiteDialect())
        context.register_dataclass(T, SequenceIdPolicy())
        persister = Persister(context)
        persister.deploy_ddl()

        stored = persister.persist(T(name="pooled", age=3))
        self.assertEqual(persister.select(T, stored.id), T(1, "pooled", 3))
        self.assertEqual(persister.delete(stored), 1)
        self.assertIsNone(persister.select(T, stored.id))


if __name__ == "__main__":
    unittest.main()
