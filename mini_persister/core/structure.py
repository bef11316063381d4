"""Static schema description: tables and their columns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Type

from .errors import MappingConfigurationError
from .models import (
    DataclassModel,
    column_name,
    field_type,
    is_auto_pk,
    is_nullable,
    model_fields,
    table_name,
)


@dataclass(frozen=True)
class Column:
    """One column of a table.

    Identity is `(table, name)`: two columns with the same owner and name are
    equal whatever their other attributes.
    """

    table: str
    name: str
    python_type: Any = field(compare=False)
    nullable: bool = field(default=True, compare=False)
    primary_key: bool = field(default=False, compare=False)
    generated: bool = field(default=False, compare=False)

    @property
    def absolute_name(self) -> str:
        return f"{self.table}.{self.name}"

    def __str__(self) -> str:
        return self.absolute_name


class Table:
    """Named, ordered set of columns with at most one primary key.

    Columns keep their declaration order, which fixes parameter positions in
    generated statements. A table is mutable only until `freeze()`.
    """

    def __init__(self, name: str):
        if not name:
            raise MappingConfigurationError("Table name must be a non-empty string.")
        self._name = name
        self._columns: Dict[str, Column] = {}
        self._primary_key: Optional[Column] = None
        self._frozen = False

    @classmethod
    def from_dataclass(cls, model: Type[DataclassModel]) -> Table:
        """Build a frozen table from dataclass fields and their metadata."""

        table = cls(table_name(model))
        for f in model_fields(model):
            auto = is_auto_pk(f)
            table.add_column(
                column_name(f),
                field_type(model, f),
                nullable=is_nullable(model, f) and not f.metadata.get("pk"),
                primary_key=bool(f.metadata.get("pk")),
                generated=auto,
            )
        return table.freeze()

    @property
    def name(self) -> str:
        return self._name

    @property
    def columns(self) -> List[Column]:
        """Columns in declaration order (a copy)."""

        return list(self._columns.values())

    @property
    def primary_key(self) -> Optional[Column]:
        return self._primary_key

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_column(
        self,
        name: str,
        python_type: Any,
        *,
        nullable: bool = True,
        primary_key: bool = False,
        generated: bool = False,
    ) -> Column:
        """Declare one column and return it."""

        if self._frozen:
            raise MappingConfigurationError(
                f"Table {self._name!r} is frozen; cannot add column {name!r}."
            )
        if not name:
            raise MappingConfigurationError("Column name must be a non-empty string.")
        if name in self._columns:
            raise MappingConfigurationError(
                f"Table {self._name!r} already has a column {name!r}."
            )
        if primary_key and self._primary_key is not None:
            raise MappingConfigurationError(
                f"Table {self._name!r} already has primary key "
                f"{self._primary_key.name!r}; composite keys are not supported."
            )
        if generated and not primary_key:
            raise MappingConfigurationError(
                f"Only a primary key can be database generated ({self._name}.{name})."
            )

        column = Column(
            table=self._name,
            name=name,
            python_type=python_type,
            nullable=nullable and not primary_key,
            primary_key=primary_key,
            generated=generated,
        )
        self._columns[name] = column
        if primary_key:
            self._primary_key = column
        return column

    def column(self, name: str) -> Column:
        """Look one column up by name."""

        try:
            return self._columns[name]
        except KeyError:
            raise MappingConfigurationError(
                f"Table {self._name!r} has no column {name!r}."
            ) from None

    def freeze(self) -> Table:
        self._frozen = True
        return self

    def __contains__(self, column: object) -> bool:
        return isinstance(column, Column) and self._columns.get(column.name) == column

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        names = ", ".join(self._columns)
        return f"Table({self._name!r}, [{names}])"
