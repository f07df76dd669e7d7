"""Member descriptors and polymorphic dispatch of sub-validators."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .errors import ArgumentError, DispatchError

if TYPE_CHECKING:
    from .validator import Validator

logger = logging.getLogger(__name__)

Accessor = Callable[[Any], Any]

# Characters that would make a result path ambiguous.
FORBIDDEN_NAME_CHARS = frozenset(".[] \t\r\n")

# Iterables that are values in their own right, never groups of business objects.
_ATOMIC_ITERABLES = (str, bytes, bytearray, memoryview, Mapping)


def check_name(name: str, what: str = "name") -> str:
    """Reject names that cannot be addressed in a result path."""
    if name is None:
        raise ArgumentError(f"{what} must not be None")
    if not isinstance(name, str):
        raise ArgumentError(f"{what} must be a string, got {type(name).__name__}")
    bad = sorted(set(name) & FORBIDDEN_NAME_CHARS)
    if bad:
        raise ArgumentError(f"{what} '{name}' contains forbidden characters: {bad!r}")
    return name


def is_group(value: Any) -> bool:
    """True when ``value`` is a collection or tuple of business objects."""
    return isinstance(value, Iterable) and not isinstance(value, _ATOMIC_ITERABLES)


def ancestor_chain(value_type: type) -> tuple[type, ...]:
    """Return ``value_type`` followed by its ancestors, ``object`` excluded."""
    return tuple(cls for cls in value_type.__mro__ if cls is not object)


class MemberDescriptor:
    """A named sub-value of a business object and the validators for its runtime types.

    ``validators`` maps a class to the validator used for values of that class
    (or of a subclass with no closer entry).
    """

    __slots__ = ("_name", "_accessor", "_validators")

    def __init__(self, name: str, accessor: Accessor, validators: Mapping[type, Validator]):
        if accessor is None or not callable(accessor):
            raise ArgumentError("Member accessor must be a callable")
        if not validators:
            raise ArgumentError(f"Member '{name}' needs at least one validator")
        self._name = check_name(name, "member name")
        self._accessor = accessor
        self._validators = MappingProxyType(dict(validators))

    @property
    def name(self) -> str:
        return self._name

    @property
    def accessor(self) -> Accessor:
        return self._accessor

    @property
    def validators(self) -> Mapping[type, Validator]:
        return self._validators

    def extract(self, obj: Any) -> Any:
        """Read the member value from ``obj``."""
        return self._accessor(obj)

    def resolve_validator(self, value: Any) -> Validator:
        """Pick the validator for ``value`` by walking its class ancestry.

        Raises:
            DispatchError: if neither the class of ``value`` nor any ancestor
                has a registered validator.
        """
        value_type = type(value)
        for cls in ancestor_chain(value_type):
            validator = self._validators.get(cls)
            if validator is not None:
                if cls is not value_type:
                    logger.debug(f"Member '{self._name}': {value_type.__name__} dispatched to {cls.__name__} validator")
                return validator
        raise DispatchError(value_type, self._name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemberDescriptor):
            return NotImplemented
        return self._name == other._name

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        types = ", ".join(cls.__name__ for cls in self._validators)
        return f"MemberDescriptor(name={self._name!r}, types=[{types}])"
