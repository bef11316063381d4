"""Property accessors and mutators used by entity mapping strategies."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence, Type, get_args, get_origin, get_type_hints

from .errors import NonReversibleAccessorError
from .models import unwrap_optional


class Accessor(Protocol):
    """Reads one value from an entity."""

    def get(self, target: Any) -> Any: ...


class Mutator(Protocol):
    """Writes one value onto an entity."""

    def set(self, target: Any, value: Any) -> None: ...


class ReversibleAccessor(Accessor, Protocol):
    def to_mutator(self) -> Mutator: ...


class NullValuePolicy(str, Enum):
    """What an accessor chain does when a link on its path is `None`."""

    RAISE = "raise"
    RETURN_NONE = "return_none"
    INITIALIZE = "initialize"


class AttributeMutator:
    """Sets an instance attribute by name."""

    def __init__(self, name: str):
        self.name = name

    def set(self, target: Any, value: Any) -> None:
        setattr(target, self.name, value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AttributeMutator) and other.name == self.name

    def __hash__(self) -> int:
        return hash((AttributeMutator, self.name))

    def __repr__(self) -> str:
        return f"AttributeMutator({self.name!r})"


class AttributeAccessor:
    """Reads an instance attribute by name; always reversible."""

    def __init__(self, name: str, value_type: Optional[Type[Any]] = None):
        self.name = name
        self.value_type = value_type

    def get(self, target: Any) -> Any:
        return getattr(target, self.name)

    def to_mutator(self) -> AttributeMutator:
        return AttributeMutator(self.name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AttributeAccessor) and other.name == self.name

    def __hash__(self) -> int:
        return hash((AttributeAccessor, self.name))

    def __repr__(self) -> str:
        return f"AttributeAccessor({self.name!r})"


class PropertyAccessor:
    """Reads a `property`; reversible only when the property has a setter."""

    def __init__(self, owner: Type[Any], name: str):
        prop = getattr(owner, name, None)
        if not isinstance(prop, property):
            raise TypeError(f"{owner.__qualname__}.{name} is not a property.")
        self.owner = owner
        self.name = name
        self._property = prop

    def get(self, target: Any) -> Any:
        return self._property.__get__(target, self.owner)

    def to_mutator(self) -> Mutator:
        if self._property.fset is None:
            raise NonReversibleAccessorError(
                f"Can't find a mutator for {self.owner.__qualname__}.{self.name}: "
                "property has no setter."
            )
        return AttributeMutator(self.name)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, PropertyAccessor)
            and other.owner is self.owner
            and other.name == self.name
        )

    def __hash__(self) -> int:
        return hash((PropertyAccessor, self.owner, self.name))

    def __repr__(self) -> str:
        return f"PropertyAccessor({self.owner.__qualname__}.{self.name})"


class ListMutator:
    """Replaces the element at `index` of a list."""

    def __init__(self, index: int):
        self.index = index

    def set(self, target: Any, value: Any) -> None:
        _check_index(target, self.index)
        target[self.index] = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ListMutator) and other.index == self.index

    def __hash__(self) -> int:
        return hash((ListMutator, self.index))

    def __repr__(self) -> str:
        return f"ListMutator({self.index})"


class ListAccessor:
    """Reads the element at `index` of a list; negative indexes are rejected."""

    def __init__(self, index: int, value_type: Optional[Type[Any]] = None):
        self.index = index
        self.value_type = value_type

    def get(self, target: Any) -> Any:
        _check_index(target, self.index)
        return target[self.index]

    def to_mutator(self) -> ListMutator:
        return ListMutator(self.index)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ListAccessor) and other.index == self.index

    def __hash__(self) -> int:
        return hash((ListAccessor, self.index))

    def __repr__(self) -> str:
        return f"ListAccessor({self.index})"


class FunctionMutator:
    """Writes through a `setter(target, value)` callable."""

    def __init__(self, setter: Callable[[Any, Any], Any]):
        if not callable(setter):
            raise TypeError(f"{setter!r} is not callable.")
        self.setter = setter

    def set(self, target: Any, value: Any) -> None:
        self.setter(target, value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FunctionMutator) and other.setter == self.setter

    def __hash__(self) -> int:
        return hash((FunctionMutator, self.setter))

    def __repr__(self) -> str:
        return f"FunctionMutator({_callable_name(self.setter)})"


class FunctionAccessor:
    """Reads through a `getter(target)` callable.

    Reversible only when a `setter` is given. Two accessors are equal when
    they wrap the same callables, so prefer named functions over lambdas
    when accessors are used as mapping keys.
    """

    def __init__(
        self,
        getter: Callable[[Any], Any],
        setter: Optional[Callable[[Any, Any], Any]] = None,
        value_type: Optional[Type[Any]] = None,
    ):
        if not callable(getter):
            raise TypeError(f"{getter!r} is not callable.")
        self.getter = getter
        self.setter = setter
        self.value_type = value_type

    def get(self, target: Any) -> Any:
        return self.getter(target)

    def to_mutator(self) -> FunctionMutator:
        if self.setter is None:
            raise NonReversibleAccessorError(
                f"Can't find a mutator for {_callable_name(self.getter)}: no setter was given."
            )
        return FunctionMutator(self.setter)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, FunctionAccessor)
            and other.getter == self.getter
            and other.setter == self.setter
        )

    def __hash__(self) -> int:
        return hash((FunctionAccessor, self.getter, self.setter))

    def __repr__(self) -> str:
        return f"FunctionAccessor({_callable_name(self.getter)})"


class AccessorChain:
    """Chain of accessors that reads a nested path such as `address.city`.

    A `None` link is handled by `null_policy`: raise (default) or return
    `None`. `INITIALIZE` only applies to the mutator side, where missing
    intermediate values are created from `value_factory`.
    """

    def __init__(
        self,
        accessors: Sequence[Accessor],
        *,
        null_policy: NullValuePolicy = NullValuePolicy.RAISE,
    ):
        if not accessors:
            raise ValueError("AccessorChain needs at least one accessor.")
        self.accessors = list(accessors)
        self.null_policy = NullValuePolicy(null_policy)

    @classmethod
    def chain(
        cls,
        *getters: Callable[[Any], Any],
        null_policy: NullValuePolicy = NullValuePolicy.RAISE,
    ) -> AccessorChain:
        """Chain plain getter callables, e.g. `chain(get_address, get_city)`."""

        return cls([FunctionAccessor(getter) for getter in getters], null_policy=null_policy)

    def get(self, target: Any) -> Any:
        current = target
        last_index = len(self.accessors) - 1
        for index, accessor in enumerate(self.accessors):
            previous = current
            current = accessor.get(previous)
            if current is None:
                if self.null_policy is NullValuePolicy.RAISE and index < last_index:
                    raise ValueError(f"{previous!r} has null value on {accessor!r}.")
                return None
        return current

    def to_mutator(
        self,
        *,
        null_policy: Optional[NullValuePolicy] = None,
        value_factory: Optional[Callable[[Accessor], Any]] = None,
    ) -> ChainMutator:
        """Reverse this chain; requires its last link to be reversible.

        `null_policy` defaults to the chain's own policy.
        """

        last = self.accessors[-1]
        to_mutator = getattr(last, "to_mutator", None)
        if not callable(to_mutator):
            raise NonReversibleAccessorError(
                f"Last accessor cannot be reverted because it is not reversible: {last!r}"
            )
        return ChainMutator(
            self.accessors[:-1],
            to_mutator(),
            null_policy=null_policy or self.null_policy,
            value_factory=value_factory,
        )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AccessorChain) and other.accessors == self.accessors

    def __hash__(self) -> int:
        return hash(tuple(self.accessors))

    def __repr__(self) -> str:
        return "AccessorChain(" + " > ".join(repr(a) for a in self.accessors) + ")"


class ChainMutator:
    """Walks all but the last link of a chain, then sets the final value."""

    def __init__(
        self,
        accessors: Sequence[Accessor],
        mutator: Mutator,
        *,
        null_policy: NullValuePolicy = NullValuePolicy.RAISE,
        value_factory: Optional[Callable[[Accessor], Any]] = None,
    ):
        self.accessors = list(accessors)
        self.mutator = mutator
        self.null_policy = NullValuePolicy(null_policy)
        self.value_factory = value_factory or _default_value_factory

    def set(self, target: Any, value: Any) -> None:
        current = target
        for accessor in self.accessors:
            previous = current
            current = accessor.get(previous)
            if current is None:
                if self.null_policy is NullValuePolicy.RETURN_NONE:
                    return
                if self.null_policy is NullValuePolicy.RAISE:
                    raise ValueError(f"{previous!r} has null value on {accessor!r}.")
                current = self._initialize(previous, accessor)
        self.mutator.set(current, value)

    def _initialize(self, owner: Any, accessor: Accessor) -> Any:
        to_mutator = getattr(accessor, "to_mutator", None)
        if not callable(to_mutator):
            raise NonReversibleAccessorError(
                f"Accessor cannot be reverted to initialize a null value: {accessor!r}"
            )
        value = self.value_factory(accessor)
        to_mutator().set(owner, value)
        return value


def _default_value_factory(accessor: Accessor) -> Any:
    value_type = getattr(accessor, "value_type", None)
    if value_type is None:
        raise TypeError(
            f"Cannot initialize null value on {accessor!r}: value type is unknown."
        )
    return value_type()


def accessor_for(cls: Type[Any], path: str) -> Any:
    """Build an accessor for a dotted attribute path on `cls`.

    Plain names give an `AttributeAccessor` (or `PropertyAccessor` for
    properties) and numeric segments give a `ListAccessor`, so `"tags.0"`
    reads the first element of `tags`. Dotted paths give an `AccessorChain`
    that returns `None` when an intermediate value is missing.
    """

    if not path:
        raise ValueError("Accessor path must be a non-empty string.")
    links: list[Any] = []
    hint: Any = cls
    for name in path.split("."):
        owner = _plain_class(hint)
        if name.isdigit():
            hint = _element_hint(hint)
            links.append(ListAccessor(int(name), _plain_class(hint)))
            continue
        if owner is not None and isinstance(getattr(owner, name, None), property):
            links.append(PropertyAccessor(owner, name))
            hint = None
            continue
        hint = _attribute_hint(owner, name)
        links.append(AttributeAccessor(name, _plain_class(hint)))
    if len(links) == 1:
        return links[0]
    return AccessorChain(links, null_policy=NullValuePolicy.RETURN_NONE)


def _attribute_hint(owner: Optional[Type[Any]], name: str) -> Any:
    if owner is None:
        return None
    try:
        hints = get_type_hints(owner)
    except (NameError, TypeError):
        return None
    return unwrap_optional(hints.get(name))


def _element_hint(hint: Any) -> Any:
    args = get_args(hint)
    if get_origin(hint) is list and args:
        return unwrap_optional(args[0])
    return None


def _plain_class(hint: Any) -> Optional[Type[Any]]:
    candidate = get_origin(hint) or hint
    return candidate if isinstance(candidate, type) else None


def _check_index(target: Any, index: int) -> None:
    size = len(target)
    if not 0 <= index < size:
        raise IndexError(f"Index {index} is out of range for a list of size {size}.")


def _callable_name(function: Any) -> str:
    return getattr(function, "__qualname__", None) or repr(function)
