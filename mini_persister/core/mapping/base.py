"""Mapping strategy contract and row transformers."""

from __future__ import annotations

from typing import Any, Callable, Generic, List, MutableMapping, Optional, Protocol, TypeVar

from ..rows import Row
from ..structure import Column, Table
from ..values import PersistentValues

T = TypeVar("T")
C = TypeVar("C", bound=MutableMapping[Any, Any])


class MappingStrategy(Protocol[T]):
    """Translates one entity type to column values and back."""

    @property
    def target_table(self) -> Table: ...

    @property
    def columns(self) -> List[Column]: ...

    def get_insert_values(self, entity: T) -> PersistentValues: ...

    def get_update_values(
        self,
        modified: Optional[T],
        unmodified: Optional[T],
        all_columns: bool,
    ) -> PersistentValues: ...

    def get_delete_values(self, entity: T) -> PersistentValues: ...

    def get_select_values(self, identifier: Any) -> PersistentValues: ...

    def get_versioned_key_values(self, entity: T) -> PersistentValues: ...

    def get_id(self, entity: T) -> Any: ...

    @property
    def is_id_given_by_database(self) -> bool: ...

    def fix_id(self, entity: T) -> Any: ...

    def set_id(self, entity: T, identifier: Any) -> None: ...

    def transform(self, row: Row) -> T: ...


class ToMapRowTransformer(Generic[C]):
    """Builds a fresh map per row and fills it through `convert`.

    `convert(row, target)` is supplied by the owning strategy.
    """

    def __init__(self, map_factory: Callable[[], C], convert: Callable[[Row, C], None]):
        self._map_factory = map_factory
        self._convert = convert

    def transform(self, row: Row) -> C:
        target = self._map_factory()
        self._convert(row, target)
        return target


class ToEntityRowTransformer(Generic[T]):
    """Entity counterpart of `ToMapRowTransformer`.

    `factory(row)` creates the instance (it may consume constructor
    arguments from the row), then `convert(row, entity)` sets the rest.
    """

    def __init__(self, factory: Callable[[Row], T], convert: Callable[[Row, T], None]):
        self._factory = factory
        self._convert = convert

    def transform(self, row: Row) -> T:
        entity = self._factory(row)
        self._convert(row, entity)
        return entity
