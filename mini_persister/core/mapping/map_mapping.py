"""Mapping strategy persisting the entries of a map across a fixed column set.

Maps carry no identity: delete/select/versioned-key values are always empty
and `get_id`, `fix_id` and `set_id` raise `UnsupportedIdentityError`. Callers scope DELETE and
SELECT statements themselves.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, List, MutableMapping, Optional, Type, TypeVar

from ..errors import MappingConfigurationError, UnsupportedIdentityError
from ..rows import Row
from ..structure import Column, Table
from ..values import PersistentValues
from .base import ToMapRowTransformer

K = TypeVar("K")
V = TypeVar("V")
C = TypeVar("C", bound=MutableMapping[Any, Any])

logger = logging.getLogger(__name__)


class MapMappingStrategy(ABC, Generic[C, K, V]):
    """Base class for map-valued strategies.

    Subclasses decide the column set and how keys and values translate to
    columns and database values, in both directions.

    Args:
        target_table: Table holding the map entries.
        persistent_type: Database-side type of the stored values.
        map_type: Map class instantiated with no argument when reading rows.
    """

    def __init__(
        self,
        target_table: Table,
        persistent_type: Type[Any],
        map_type: Callable[[], C] = dict,  # type: ignore[assignment]
    ):
        self._table = target_table
        self.persistent_type = persistent_type
        self._columns = list(dict.fromkeys(self.init_target_columns()))
        target_table.freeze()
        self._row_transformer: ToMapRowTransformer[C] = ToMapRowTransformer(
            map_type, self._convert_row_content
        )

    @property
    def target_table(self) -> Table:
        return self._table

    @property
    def columns(self) -> List[Column]:
        return list(self._columns)

    @abstractmethod
    def init_target_columns(self) -> List[Column]:
        """Return the ordered column set used by this strategy."""

    @abstractmethod
    def get_column(self, key: K) -> Column:
        """Column storing the value of `key`."""

    @abstractmethod
    def to_database_value(self, value: V) -> Any:
        """Convert a map value to its database value."""

    @abstractmethod
    def get_key(self, column_name: str) -> K:
        """Reverse of `get_column`: map key for a result column name."""

    @abstractmethod
    def to_map_value(self, raw: Any) -> V:
        """Reverse of `to_database_value`."""

    def get_insert_values(self, entity: Optional[C]) -> PersistentValues:
        """One upsert value per column; columns without an entry get `None`."""

        values = PersistentValues()
        for key, value in (entity or {}).items():
            values.put_upsert_value(self.get_column(key), self._database_value(value))
        for column in self._columns:
            if column not in values.upsert_values:
                values.put_upsert_value(column, None)
        return values

    def get_update_values(
        self,
        modified: Optional[C],
        unmodified: Optional[C],
        all_columns: bool,
    ) -> PersistentValues:
        """Diff `modified` against `unmodified`.

        A key present in `unmodified` but missing from `modified` is emitted
        with `modified.get(key)`, not as a deletion. That is `None` for plain
        maps, but maps overriding `get` may yield something else: callers
        relying on removal must make sure that lookup yields what they want
        written.

        With `all_columns`, any change pads the result with every other
        column so the statement rewrites a complete row; columns that no map
        mentions are padded with `None`. A `None` `modified` with a snapshot
        and `all_columns` clears every column.
        """

        values = PersistentValues()
        if modified is not None:
            unchanged: Dict[Column, Any] = {}
            for key, value in modified.items():
                column = self.get_column(key)
                previous = None if unmodified is None else unmodified.get(key)
                if value != previous:
                    values.put_upsert_value(column, self._database_value(value))
                else:
                    unchanged[column] = self._database_value(value)

            if unmodified is not None:
                for key in unmodified:
                    if key not in modified:
                        values.put_upsert_value(
                            self.get_column(key), self._database_value(modified.get(key))
                        )

            if all_columns and values.upsert_values:
                for column in self._columns:
                    if column not in values.upsert_values:
                        values.put_upsert_value(column, unchanged.get(column))
        elif all_columns and unmodified is not None:
            for column in self._columns:
                values.put_upsert_value(column, None)
        return values

    def get_delete_values(self, entity: C) -> PersistentValues:
        return PersistentValues()

    def get_select_values(self, identifier: Any) -> PersistentValues:
        return PersistentValues()

    def get_versioned_key_values(self, entity: C) -> PersistentValues:
        return PersistentValues()

    @property
    def is_id_given_by_database(self) -> bool:
        return False

    def get_id(self, entity: C) -> Any:
        raise self._no_identity()

    def fix_id(self, entity: C) -> Any:
        raise self._no_identity()

    def set_id(self, entity: C, identifier: Any) -> None:
        raise self._no_identity()

    def transform(self, row: Row) -> C:
        return self._row_transformer.transform(row)

    def _no_identity(self) -> UnsupportedIdentityError:
        return UnsupportedIdentityError(
            f"{type(self).__name__} can't provide an id: maps have no identity."
        )

    def _database_value(self, value: Any) -> Any:
        return None if value is None else self.to_database_value(value)

    def _convert_row_content(self, row: Row, target: C) -> None:
        for column_name, raw in row.items():
            target[self.get_key(column_name)] = self.to_map_value(raw)


class IndexedMapMappingStrategy(MapMappingStrategy[C, int, Any]):
    """Stores integer keys `0..size-1` in columns named `<prefix><key>`.

    Columns are added to `target_table` unless it is already frozen, in which
    case they must already exist.
    """

    def __init__(
        self,
        target_table: Table,
        prefix: str,
        size: int,
        persistent_type: Type[Any],
        map_type: Callable[[], C] = dict,  # type: ignore[assignment]
    ):
        if size < 1:
            raise MappingConfigurationError("size must be >= 1.")
        self.prefix = prefix
        self.size = size
        super().__init__(target_table, persistent_type, map_type)

    def column_name(self, key: int) -> str:
        return f"{self.prefix}{key}"

    def init_target_columns(self) -> List[Column]:
        table = self.target_table
        columns = []
        for key in range(self.size):
            name = self.column_name(key)
            if table.frozen:
                columns.append(table.column(name))
            else:
                columns.append(table.add_column(name, self.persistent_type))
        logger.debug("Mapped %d map entries onto %s", self.size, table.name)
        return columns

    def get_column(self, key: int) -> Column:
        if not isinstance(key, int) or not 0 <= key < self.size:
            raise MappingConfigurationError(
                f"Key {key!r} is outside the mapped range 0..{self.size - 1} "
                f"of table {self.target_table.name!r}."
            )
        return self._columns[key]

    def to_database_value(self, value: Any) -> Any:
        return value

    def get_key(self, column_name: str) -> int:
        if not column_name.startswith(self.prefix):
            raise MappingConfigurationError(
                f"Column {column_name!r} does not start with prefix {self.prefix!r}."
            )
        try:
            return int(column_name[len(self.prefix):])
        except ValueError:
            raise MappingConfigurationError(
                f"Column {column_name!r} does not end with a map key."
            ) from None

    def to_map_value(self, raw: Any) -> Any:
        return raw

