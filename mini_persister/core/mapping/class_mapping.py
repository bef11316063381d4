"""Mapping strategy for plain entity classes and dataclasses."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from ..accessors import AccessorChain, AttributeAccessor, NullValuePolicy, accessor_for
from ..codecs import from_database_value, to_database_value
from ..errors import MappingConfigurationError, NonReversibleAccessorError
from ..models import DataclassModel, column_name, field_type, require_dataclass_model
from ..rows import Row
from ..structure import Column, Table
from ..values import PersistentValues
from .base import ToEntityRowTransformer
from .id_policies import DatabaseGeneratedIdPolicy, IdPolicy, UUIDIdPolicy

T = TypeVar("T")


class ClassMappingStrategy(Generic[T]):
    """Maps the properties of one entity class onto the columns of one table.

    Args:
        entity_type: Class of the mapped entities.
        table: Target table; it must declare a primary key.
        property_columns: Accessor (or dotted attribute path) → column.
        id_policy: How new entities get an identifier. Defaults to
            database-generated ids for generated keys, UUID strings for `str`
            keys, and no policy otherwise (ids must then be set by callers).
        version_column: Optional column used in optimistic-concurrency
            predicates.
        constructor_arguments: Keyword argument name → column, for values
            that must be passed to `entity_type(...)` when rebuilding from a
            row. Remaining properties are set afterwards.
    """

    def __init__(
        self,
        entity_type: Type[T],
        table: Table,
        property_columns: Mapping[Any, Column],
        id_policy: Optional[IdPolicy] = None,
        *,
        version_column: Optional[Column] = None,
        constructor_arguments: Optional[Mapping[str, Column]] = None,
    ):
        pk = table.primary_key
        if pk is None:
            raise MappingConfigurationError(
                f"Table {table.name!r} mapped to {entity_type.__qualname__} has no primary key."
            )

        self.entity_type = entity_type
        self._table = table.freeze()
        self._column_accessors: Dict[Column, Any] = {}
        for key, column in property_columns.items():
            accessor = accessor_for(entity_type, key) if isinstance(key, str) else key
            self._check_column(column)
            if column in self._column_accessors:
                raise MappingConfigurationError(f"Column {column} is mapped twice.")
            self._column_accessors[column] = accessor

        if pk not in self._column_accessors:
            raise MappingConfigurationError(
                f"Primary key {pk} is not mapped to any property of "
                f"{entity_type.__qualname__}."
            )
        if version_column is not None:
            self._check_column(version_column)
        self._version_column = version_column

        self._constructor_arguments = dict(constructor_arguments or {})
        for column in self._constructor_arguments.values():
            self._check_column(column)

        self._mutators: Dict[Column, Union[Any, NonReversibleAccessorError]] = {}
        for column, accessor in self._column_accessors.items():
            try:
                self._mutators[column] = _to_mutator(accessor)
            except NonReversibleAccessorError as exc:
                self._mutators[column] = exc

        self.id_policy = id_policy if id_policy is not None else _default_id_policy(pk)
        self._row_transformer: ToEntityRowTransformer[T] = ToEntityRowTransformer(
            self._instantiate, self._fill
        )

    @classmethod
    def for_dataclass(
        cls,
        model: Type[DataclassModel],
        id_policy: Optional[IdPolicy] = None,
    ) -> ClassMappingStrategy[Any]:
        """Derive table, properties and constructor arguments from a dataclass.

        Field metadata understood: `pk`, `auto`, `column`, `version`.
        """

        require_dataclass_model(model)
        table = Table.from_dataclass(model)
        property_columns: Dict[Any, Column] = {}
        constructor_arguments: Dict[str, Column] = {}
        version_column: Optional[Column] = None
        for f in fields(model):
            column = table.column(column_name(f))
            property_columns[AttributeAccessor(f.name, field_type(model, f))] = column
            if f.init:
                constructor_arguments[f.name] = column
            if f.metadata.get("version"):
                version_column = column
        return cls(
            model,
            table,
            property_columns,
            id_policy,
            version_column=version_column,
            constructor_arguments=constructor_arguments,
        )

    @property
    def target_table(self) -> Table:
        return self._table

    @property
    def columns(self) -> List[Column]:
        return self._table.columns

    @property
    def is_id_given_by_database(self) -> bool:
        return bool(getattr(self.id_policy, "given_by_database", False))

    def get_insert_values(self, entity: T) -> PersistentValues:
        values = PersistentValues()
        for column in self.columns:
            values.put_upsert_value(column, self._column_value(entity, column))
        return values

    def get_update_values(
        self,
        modified: Optional[T],
        unmodified: Optional[T],
        all_columns: bool,
    ) -> PersistentValues:
        """Values for an UPDATE of `modified`, compared to `unmodified`.

        Without a snapshot every non-key column is written. With one, only
        changed columns are, unless `all_columns` asks for the full row as
        soon as anything changed. The key is always a where value.
        """

        values = PersistentValues()
        pk = self._pk
        candidates = [column for column in self.columns if column != pk]

        if modified is None:
            if all_columns and unmodified is not None:
                for column in candidates:
                    values.put_upsert_value(column, None)
                values.put_where_value(pk, self._column_value(unmodified, pk))
            return values

        current = {column: self._column_value(modified, column) for column in candidates}
        if unmodified is None:
            changed = set(candidates)
        else:
            changed = {
                column
                for column in candidates
                if current[column] != self._column_value(unmodified, column)
            }

        if changed:
            for column in candidates:
                if column in changed or all_columns:
                    values.put_upsert_value(column, current[column])
            values.put_where_value(pk, self._column_value(modified, pk))
        return values

    def get_delete_values(self, entity: T) -> PersistentValues:
        return PersistentValues(where_values={self._pk: self._column_value(entity, self._pk)})

    def get_select_values(self, identifier: Any) -> PersistentValues:
        return PersistentValues(where_values={self._pk: identifier})

    def get_versioned_key_values(self, entity: T) -> PersistentValues:
        values = self.get_delete_values(entity)
        if self._version_column is not None:
            values.put_where_value(
                self._version_column, self._column_value(entity, self._version_column)
            )
        return values

    def get_id(self, entity: T) -> Any:
        return self._column_accessors[self._pk].get(entity)

    def fix_id(self, entity: T) -> Any:
        """Assign a fresh identifier from the id policy and return it."""

        if self.is_id_given_by_database:
            raise MappingConfigurationError(
                f"Identifiers of {self.entity_type.__qualname__} are given by the database."
            )
        if self.id_policy is None:
            raise MappingConfigurationError(
                f"{self.entity_type.__qualname__} has no id policy; set its "
                f"{self._pk.name!r} before persisting."
            )
        identifier = self.id_policy.generate()
        self.set_id(entity, identifier)
        return identifier

    def set_id(self, entity: T, identifier: Any) -> None:
        self._mutator(self._pk).set(entity, identifier)

    def transform(self, row: Row) -> T:
        return self._row_transformer.transform(row)

    @property
    def _pk(self) -> Column:
        pk = self._table.primary_key
        if pk is None:
            raise MappingConfigurationError(f"Table {self._table.name!r} has no primary key.")
        return pk

    def _check_column(self, column: Column) -> None:
        if column not in self._table:
            raise MappingConfigurationError(
                f"Column {column} does not belong to table {self._table.name!r}."
            )

    def _column_value(self, entity: T, column: Column) -> Any:
        accessor = self._column_accessors.get(column)
        if accessor is None:
            return None
        return to_database_value(column, accessor.get(entity))

    def _mutator(self, column: Column) -> Any:
        mutator = self._mutators[column]
        if isinstance(mutator, NonReversibleAccessorError):
            raise NonReversibleAccessorError(
                f"Cannot write column {column} back onto "
                f"{self.entity_type.__qualname__}: {mutator}"
            ) from mutator
        return mutator

    def _instantiate(self, row: Row) -> T:
        kwargs = {
            name: from_database_value(column, row.get(column.name))
            for name, column in self._constructor_arguments.items()
        }
        return self.entity_type(**kwargs)

    def _fill(self, row: Row, entity: T) -> None:
        already_set = set(self._constructor_arguments.values())
        for column in self._column_accessors:
            if column in already_set or column.name not in row:
                continue
            self._mutator(column).set(entity, from_database_value(column, row[column.name]))


def _to_mutator(accessor: Any) -> Any:
    if isinstance(accessor, AccessorChain):
        return accessor.to_mutator(null_policy=NullValuePolicy.INITIALIZE)
    to_mutator = getattr(accessor, "to_mutator", None)
    if not callable(to_mutator):
        raise NonReversibleAccessorError(f"{accessor!r} has no mutator.")
    return to_mutator()


def _default_id_policy(pk: Column) -> Optional[IdPolicy]:
    if pk.generated:
        return DatabaseGeneratedIdPolicy()
    if pk.python_type is str:
        return UUIDIdPolicy()
    return None
