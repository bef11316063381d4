"""Public core API for mapping, SQL generation, and persistence."""

from .accessors import (
    AccessorChain,
    AttributeAccessor,
    AttributeMutator,
    ChainMutator,
    FunctionAccessor,
    FunctionMutator,
    ListAccessor,
    ListMutator,
    NullValuePolicy,
    PropertyAccessor,
    accessor_for,
)
from .context import PersistenceContext
from .contracts import ConnectorPort, DDLParticipant, DialectPort
from .ddl import DDLTableGenerator, IndexParticipant, SequenceParticipant
from .dml import (
    DeleteOperation,
    DMLGenerator,
    InsertOperation,
    SelectOperation,
    SQLOperation,
    UpdateOperation,
)
from .errors import (
    ExecutionError,
    MappingConfigurationError,
    MissingTypeMappingError,
    NonReversibleAccessorError,
    PersistenceError,
    UnmappedEntityError,
    UnsupportedIdentityError,
)
from .mapping import (
    ClassMappingStrategy,
    DatabaseGeneratedIdPolicy,
    IdPolicy,
    IndexedMapMappingStrategy,
    MapMappingStrategy,
    MappingStrategy,
    SequenceIdPolicy,
    UUIDIdPolicy,
)
from .persister import Persister
from .rows import Row, RowIterator
from .structure import Column, Table
from .values import PersistentValues

__all__ = [
    "AccessorChain",
    "AttributeAccessor",
    "AttributeMutator",
    "ChainMutator",
    "FunctionAccessor",
    "FunctionMutator",
    "ListAccessor",
    "ListMutator",
    "ClassMappingStrategy",
    "Column",
    "ConnectorPort",
    "DDLParticipant",
    "DDLTableGenerator",
    "DMLGenerator",
    "DatabaseGeneratedIdPolicy",
    "DeleteOperation",
    "DialectPort",
    "ExecutionError",
    "IdPolicy",
    "IndexParticipant",
    "IndexedMapMappingStrategy",
    "InsertOperation",
    "MapMappingStrategy",
    "MappingConfigurationError",
    "MappingStrategy",
    "MissingTypeMappingError",
    "NonReversibleAccessorError",
    "NullValuePolicy",
    "PersistenceContext",
    "PersistenceError",
    "PersistentValues",
    "Persister",
    "PropertyAccessor",
    "Row",
    "RowIterator",
    "SQLOperation",
    "SelectOperation",
    "SequenceIdPolicy",
    "SequenceParticipant",
    "Table",
    "UUIDIdPolicy",
    "UnmappedEntityError",
    "UnsupportedIdentityError",
    "UpdateOperation",
    "accessor_for",
]
