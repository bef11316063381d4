"""Mapping strategies between entities and column value sets."""

from .base import MappingStrategy, ToEntityRowTransformer, ToMapRowTransformer
from .class_mapping import ClassMappingStrategy
from .id_policies import DatabaseGeneratedIdPolicy, IdPolicy, SequenceIdPolicy, UUIDIdPolicy
from .map_mapping import IndexedMapMappingStrategy, MapMappingStrategy

__all__ = [
    "ClassMappingStrategy",
    "DatabaseGeneratedIdPolicy",
    "IdPolicy",
    "IndexedMapMappingStrategy",
    "MapMappingStrategy",
    "MappingStrategy",
    "SequenceIdPolicy",
    "ToEntityRowTransformer",
    "ToMapRowTransformer",
    "UUIDIdPolicy",
]
