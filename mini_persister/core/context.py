"""Explicit setup-time registry shared by a persister."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from .contracts import ConnectorPort, DDLParticipant, DialectPort
from .errors import MappingConfigurationError, UnmappedEntityError
from .mapping.class_mapping import ClassMappingStrategy
from .mapping.id_policies import IdPolicy
from .models import DataclassModel

logger = logging.getLogger(__name__)


class PersistenceContext:
    """Entity type → mapping strategy registry plus DDL participants.

    The context is populated during setup and then frozen; registration after
    `freeze()` raises `MappingConfigurationError`. Strategies are resolved by
    the exact runtime type of an entity.
    """

    def __init__(self, connector: ConnectorPort, dialect: DialectPort):
        self.connector = connector
        self.dialect = dialect
        self._strategies: Dict[type, Any] = {}
        self._ddl_participants: List[DDLParticipant] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> PersistenceContext:
        if not self._frozen:
            logger.debug(
                "Freezing persistence context with %d strategies and %d DDL participants",
                len(self._strategies),
                len(self._ddl_participants),
            )
        self._frozen = True
        return self

    def register(self, entity_type: type, strategy: Any) -> Any:
        """Register the mapping strategy of one entity type and return it."""

        self._ensure_setup()
        if not isinstance(entity_type, type):
            raise TypeError(f"entity_type must be a class, got {entity_type!r}.")
        if entity_type in self._strategies:
            raise MappingConfigurationError(
                f"{entity_type.__qualname__} already has a mapping strategy."
            )
        strategy.target_table.freeze()
        self._strategies[entity_type] = strategy
        return strategy

    def register_dataclass(
        self,
        model: Type[DataclassModel],
        id_policy: Optional[IdPolicy] = None,
    ) -> ClassMappingStrategy[Any]:
        """Derive and register a strategy for a dataclass model."""

        return self.register(model, ClassMappingStrategy.for_dataclass(model, id_policy))

    def add_ddl_participant(self, participant: DDLParticipant) -> None:
        """Add a participant; they run in registration order, once each."""

        self._ensure_setup()
        if not isinstance(participant, DDLParticipant):
            raise TypeError(
                f"{type(participant).__name__} does not implement generate_create_scripts()."
            )
        if participant not in self._ddl_participants:
            self._ddl_participants.append(participant)

    def mapping_strategy(self, entity_type: type) -> Any:
        """Return the strategy of `entity_type`.

        Raises:
            UnmappedEntityError: If the type was never registered.
        """

        try:
            return self._strategies[entity_type]
        except KeyError:
            raise UnmappedEntityError(entity_type) from None

    @property
    def mapping_strategies(self) -> Dict[type, Any]:
        """Registered strategies in registration order (a copy)."""

        return dict(self._strategies)

    @property
    def ddl_participants(self) -> List[DDLParticipant]:
        return list(self._ddl_participants)

    def _ensure_setup(self) -> None:
        if self._frozen:
            raise MappingConfigurationError(
                "Persistence context is frozen; register mappings before deploying or persisting."
            )
