"""Schema deployment and per-entity CRUD orchestration."""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator, List, Optional, Type, TypeVar

from .context import PersistenceContext
from .contracts import DDLParticipant
from .ddl import DDLTableGenerator
from .dml import DMLGenerator, SQLOperation
from .errors import ExecutionError, PersistenceError, UnsupportedIdentityError
from .mapping.base import MappingStrategy
from .rows import Row, RowIterator
from .structure import Column, Table
from .types import PositionalParams
from .values import PersistentValues

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Persister:
    """Persists registered entities through their mapping strategies.

    Every statement runs on its own connection from the context's connector:
    bind, execute, commit, then release the cursor and the connection, on
    every exit path. There is no transaction spanning several calls.
    """

    def __init__(self, context: PersistenceContext):
        self.context = context
        self.dml_generator = DMLGenerator(context.dialect)
        self.ddl_table_generator = DDLTableGenerator(context.dialect)

    def add(self, participant: DDLParticipant) -> None:
        """Register a DDL participant (setup only)."""

        self.context.add_ddl_participant(participant)

    def create(self, entity_type: type) -> str:
        """Create the table of one registered entity type."""

        return self.create_table(self._mapping_strategy(entity_type).target_table)

    def create_table(self, table: Table) -> str:
        sql = self.ddl_table_generator.generate_create_table(table)
        self.execute(sql)
        return sql

    def deploy_ddl(self) -> List[str]:
        """Create every entity table, then run every DDL participant.

        All `CREATE TABLE` statements are generated before any is executed,
        so a missing type mapping fails before touching the database. The
        first failing statement aborts the deployment.

        Returns:
            Executed statements, in order.
        """

        self.context.freeze()
        table_statements = [
            self.ddl_table_generator.generate_create_table(strategy.target_table)
            for strategy in self.context.mapping_strategies.values()
        ]
        executed: List[str] = []
        for sql in table_statements:
            self.execute(sql)
            executed.append(sql)
        for participant in self.context.ddl_participants:
            for sql in participant.generate_create_scripts():
                self.execute(sql)
                executed.append(sql)
        logger.info(
            "Deployed %d tables and %d auxiliary statements",
            len(table_statements),
            len(executed) - len(table_statements),
        )
        return executed

    def execute(self, sql: str) -> None:
        """Run one parameterless statement."""

        with self._statement(sql) as cursor:
            cursor.execute(sql)

    def persist(self, entity: T) -> T:
        """Insert `entity` when it has no id yet, otherwise update it.

        New entities get an id from the strategy's id policy, unless the
        database generates it, in which case it is read back after the
        insert. Updates rewrite every non-key column.
        """

        strategy = self._mapping_strategy(type(entity))
        if strategy.get_id(entity) is None:
            self._insert(strategy, entity)
            return entity

        values = strategy.get_update_values(entity, None, True)
        pk = strategy.target_table.primary_key
        columns = [column for column in strategy.columns if column != pk]
        if not columns:
            logger.debug("Nothing to update on %s besides its primary key", type(entity).__qualname__)
            return entity
        operation = self.dml_generator.build_update(columns, values.where_values.keys())
        self._execute_write(operation, values)
        return entity

    def update(self, modified: Optional[T], unmodified: Optional[T], all_columns: bool = False) -> int:
        """Write only what differs between `modified` and `unmodified`.

        A `None` `modified` with `all_columns` clears every non-key column of
        the row identified by `unmodified`.

        Returns:
            Affected row count; 0 without any executed statement when nothing
            changed.
        """

        reference = modified if modified is not None else unmodified
        if reference is None:
            raise ValueError("update() needs at least one of modified or unmodified.")
        strategy = self._mapping_strategy(type(reference))
        pk = _primary_key(strategy, type(reference))
        values = strategy.get_update_values(modified, unmodified, all_columns)
        columns = [column for column in values.upsert_values if column != pk]
        if not columns:
            return 0
        operation = self.dml_generator.build_update(columns, values.where_values.keys())
        return self._execute_write(operation, values)

    def delete(self, entity: T) -> int:
        """Delete `entity` by primary key; no-op for a never-persisted entity."""

        strategy = self._mapping_strategy(type(entity))
        pk = _primary_key(strategy, type(entity))
        if strategy.get_id(entity) is None:
            return 0
        operation = self.dml_generator.build_delete(strategy.target_table, [pk])
        return self._execute_write(operation, strategy.get_delete_values(entity))

    def select(self, entity_type: Type[T], identifier: Any) -> Optional[T]:
        """Load one entity by id, or `None` when no row matches.

        Raises:
            ValueError: If `identifier` is `None`.
        """

        strategy = self._mapping_strategy(entity_type)
        if identifier is None:
            raise ValueError(
                f"Non selectable entity {entity_type.__qualname__} because of null id."
            )
        pk = _primary_key(strategy, entity_type)
        operation = self.dml_generator.build_select(strategy.target_table, strategy.columns, [pk])
        values = strategy.get_select_values(identifier)
        params = operation.bind(values)

        row: Optional[Row] = None
        with self._statement(operation.sql, params) as cursor:
            cursor.execute(operation.sql, params)
            rows = RowIterator(cursor, [column.name for column in operation.columns])
            row = next(rows, None)
        if row is None:
            return None
        return strategy.transform(row)

    def _insert(self, strategy: MappingStrategy[Any], entity: Any) -> None:
        generated = strategy.is_id_given_by_database
        if not generated:
            strategy.fix_id(entity)
        table = strategy.target_table
        operation = self.dml_generator.build_insert(
            strategy.columns,
            returning=table.primary_key if generated else None,
        )
        values = strategy.get_insert_values(entity)
        params = operation.bind(values)

        new_id = None
        with self._statement(operation.sql, params) as cursor:
            cursor.execute(operation.sql, params)
            if generated:
                if operation.returning is not None:
                    returned = cursor.fetchall()
                    new_id = _first_value(returned[0]) if returned else None
                else:
                    new_id = self.context.dialect.get_lastrowid(cursor)
        if generated and new_id is not None:
            strategy.set_id(entity, new_id)

    def _execute_write(self, operation: SQLOperation, values: PersistentValues) -> int:
        params = operation.bind(values)
        with self._statement(operation.sql, params) as cursor:
            cursor.execute(operation.sql, params)
            return cursor.rowcount

    def _mapping_strategy(self, entity_type: type) -> MappingStrategy[Any]:
        self.context.freeze()
        return self.context.mapping_strategy(entity_type)

    @contextlib.contextmanager
    def _statement(self, sql: str, params: PositionalParams = ()) -> Iterator[Any]:
        """Cursor scope for one statement; driver failures become `ExecutionError`."""

        logger.debug("Executing %s with %d parameters", sql, len(params))
        with self.context.connector.connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except PersistenceError:
                conn.rollback()
                raise
            except Exception as exc:
                _rollback_quietly(conn)
                logger.error("Statement failed: %s", sql, exc_info=True)
                raise ExecutionError(sql, exc) from exc
            finally:
                close = getattr(cursor, "close", None)
                if callable(close):
                    close()


def _rollback_quietly(conn: Any) -> None:
    try:
        conn.rollback()
    except Exception:
        logger.warning("Rollback failed after statement error", exc_info=True)


def _first_value(returned: Any) -> Any:
    if isinstance(returned, (tuple, list)):
        return returned[0]
    values = getattr(returned, "values", None)
    if callable(values):
        return next(iter(values()))
    return returned[0]


def _primary_key(strategy: MappingStrategy[Any], entity_type: type) -> Column:
    pk = strategy.target_table.primary_key
    if pk is None:
        raise UnsupportedIdentityError(
            f"{entity_type.__qualname__} is mapped to table {strategy.target_table.name!r} "
            "which has no primary key."
        )
    return pk
