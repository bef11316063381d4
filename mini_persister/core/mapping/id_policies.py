"""Identifier assignment policies for entities that are not yet persisted."""

from __future__ import annotations

import itertools
import threading
import uuid
from typing import Any, Protocol


class IdPolicy(Protocol):
    """Decides who assigns identifiers to new entities."""

    given_by_database: bool

    def generate(self) -> Any: ...


class DatabaseGeneratedIdPolicy:
    """The database assigns keys (auto increment / serial columns)."""

    given_by_database = True

    def generate(self) -> Any:
        raise NotImplementedError("Identifiers are generated by the database.")


class UUIDIdPolicy:
    """Random UUID4 strings."""

    given_by_database = False

    def generate(self) -> str:
        return str(uuid.uuid4())


class SequenceIdPolicy:
    """Monotonic in-process integer counter; thread-safe."""

    given_by_database = False

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def generate(self) -> int:
        with self._lock:
            return next(self._counter)
