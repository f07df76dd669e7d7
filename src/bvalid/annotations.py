"""Decorator-based declaration of business objects.

Classes mark their rules and members with decorators; ``AnnotationBuilder``
turns those marks into ordinary ``add_rule`` / ``add_member`` calls, so the
resulting validator is the same as one assembled by hand::

    @business_object(name="Person")
    class Person:
        @business_rule(id="ageValid", description="Age must be realistic")
        def is_age_valid(self) -> bool:
            return 0 < self.age < 150

        @business_member(name="phones")
        def get_phones(self) -> list[Phone]:
            return self.phones

    validator = validator_for(Person)

Declarations are inherited: the class hierarchy is walked from the furthest
base down, and redefining a decorated method without the decorator drops it.
"""

from __future__ import annotations

import inspect
import logging
import types
import typing
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, TypeVar

from .builder import ValidatorBuilder
from .errors import ConstructionError
from .validator import Validator

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OBJECT_MARK = "__bvalid_object__"
_RULE_MARK = "__bvalid_rule__"
_MEMBER_MARK = "__bvalid_member__"


@dataclass(frozen=True)
class BusinessObjectMark:
    name: str


@dataclass(frozen=True)
class BusinessRuleMark:
    id: str
    description: str


@dataclass(frozen=True)
class BusinessMemberMark:
    name: str
    types: tuple[type, ...] | None


def business_object(cls: type | None = None, *, name: str = ""):
    """Mark a class as a business object. ``name`` defaults to the class name."""
    def decorate(klass: type) -> type:
        setattr(klass, _OBJECT_MARK, BusinessObjectMark(name or klass.__name__))
        return klass

    if cls is not None:
        return decorate(cls)
    return decorate


def business_rule(func: Callable | None = None, *, id: str = "", description: str = ""):
    """Mark a zero-argument method returning a bool as a business rule."""
    def decorate(target):
        _mark(target, _RULE_MARK, BusinessRuleMark(id, description))
        return target

    if func is not None:
        return decorate(func)
    return decorate


def business_member(func: Callable | None = None, *, name: str = "", types: Iterable[type] | None = None):
    """Mark a zero-argument method or property getter as a business member.

    The candidate types come from ``types`` or, when omitted, from the return
    annotation (``X``, ``X | None``, ``list[X]``, ``tuple[X, ...]``, ``A | B``).
    """
    candidate_types = tuple(types) if types is not None else None

    def decorate(target):
        member_name = name or _function_of(target).__name__
        _mark(target, _MEMBER_MARK, BusinessMemberMark(member_name, candidate_types))
        return target

    if func is not None:
        return decorate(func)
    return decorate


def _function_of(target) -> Callable:
    if isinstance(target, property):
        return target.fget
    return target


def _mark(target, attribute: str, mark) -> None:
    func = _function_of(target)
    if not callable(func):
        raise TypeError(f"Cannot mark {target!r}: expected a function or a property")
    setattr(func, attribute, mark)


def _own_mark(cls: type) -> BusinessObjectMark | None:
    return cls.__dict__.get(_OBJECT_MARK)


def is_business_object(cls: type) -> bool:
    """True if ``cls`` or one of its ancestors is marked with ``@business_object``."""
    return any(_own_mark(klass) is not None for klass in cls.__mro__ if klass is not object)


def business_object_name(cls: type) -> str:
    mark = _own_mark(cls)
    return mark.name if mark is not None else cls.__name__


def _declarations(cls: type) -> list[tuple[str, Any, Callable, bool]]:
    """Collect ``(attribute, mark, function, is_property)`` from the base-most class down."""
    found: dict[str, tuple[str, Any, Callable, bool]] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for attribute, value in vars(klass).items():
            if isinstance(value, (staticmethod, classmethod)):
                found.pop(attribute, None)
                continue
            func = _function_of(value)
            mark = getattr(func, _RULE_MARK, None) or getattr(func, _MEMBER_MARK, None)
            if mark is not None and callable(func):
                found[attribute] = (attribute, mark, func, isinstance(value, property))
            else:
                found.pop(attribute, None)
    return list(found.values())


def _check_no_arguments(cls: type, attribute: str, func: Callable, kind: str) -> None:
    parameters = list(inspect.signature(func).parameters.values())[1:]
    required = [p for p in parameters
                if p.default is inspect.Parameter.empty
                and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)]
    if required:
        raise ConstructionError(
            f"Method '{attribute}' of class '{cls.__qualname__}' does not respect the {kind} "
            f"format (it must take no arguments besides self)"
        )


def _types_from_hint(hint: Any, owner: type, attribute: str) -> tuple[type, ...]:
    origin = typing.get_origin(hint)
    if origin in (typing.Union, types.UnionType):
        return tuple(t for arg in typing.get_args(hint) if arg is not type(None)
                     for t in _types_from_hint(arg, owner, attribute))
    if origin is not None:
        if isinstance(origin, type) and issubclass(origin, Mapping):
            raise ConstructionError(f"Member '{attribute}' of '{owner.__qualname__}': mappings are not supported")
        if isinstance(origin, type) and issubclass(origin, Iterable):
            return tuple(t for arg in typing.get_args(hint) if arg is not Ellipsis
                         for t in _types_from_hint(arg, owner, attribute))
    if isinstance(hint, type):
        return (hint,)
    raise ConstructionError(
        f"Member '{attribute}' of '{owner.__qualname__}': cannot derive a business object type from {hint!r}"
    )


def _member_types(owner: type, attribute: str, func: Callable, mark: BusinessMemberMark) -> tuple[type, ...]:
    if mark.types:
        return mark.types
    try:
        hints = typing.get_type_hints(func, localns={owner.__name__: owner})
    except NameError as e:
        raise ConstructionError(
            f"Member '{attribute}' of '{owner.__qualname__}': unresolved return annotation ({e}); "
            f"pass types= to @business_member"
        ) from e
    if "return" not in hints:
        raise ConstructionError(
            f"Member '{attribute}' of '{owner.__qualname__}' needs a return annotation or types="
        )
    member_types = _types_from_hint(hints["return"], owner, attribute)
    if not member_types:
        raise ConstructionError(f"Member '{attribute}' of '{owner.__qualname__}' has no business object type")
    return member_types


class AnnotationBuilder(ValidatorBuilder[T]):
    """A ValidatorBuilder populated from the decorators of a business object class.

    Member types are resolved through a registry shared by the whole
    discovery, so classes referencing themselves or each other get one
    builder each and the usual compiler closes the cycles.
    """

    def __init__(self, cls: type[T], _registry: dict[type, AnnotationBuilder] | None = None):
        if cls is None or not isinstance(cls, type):
            raise ConstructionError("type is not set")
        if not is_business_object(cls):
            raise ConstructionError(
                f"Neither the class {cls.__qualname__} nor any of its super-classes is marked "
                f"with @business_object"
            )
        super().__init__(cls, business_object_name(cls))
        registry = {} if _registry is None else _registry
        registry[cls] = self

        for attribute, mark, func, is_property in _declarations(cls):
            if isinstance(mark, BusinessRuleMark):
                if not is_property:
                    _check_no_arguments(cls, attribute, func, "business rule")
                self.add_rule(mark.id, _reader(attribute, is_property), mark.description or attribute)
            else:
                if not is_property:
                    _check_no_arguments(cls, attribute, func, "business member")
                builders = []
                for member_type in _member_types(cls, attribute, func, mark):
                    builder = registry.get(member_type)
                    if builder is None:
                        builder = AnnotationBuilder(member_type, registry)
                    builders.append(builder)
                self.add_member(mark.name, _reader(attribute, is_property), *builders)

        logger.debug(f"Discovered {self.rules_count} rules and {self.members_count} members on {cls.__qualname__}")


def _reader(attribute: str, is_property: bool) -> Callable[[Any], Any]:
    if is_property:
        return attrgetter(attribute)

    def call(obj: Any) -> Any:
        return getattr(obj, attribute)()
    return call


def validator_for(cls: type[T]) -> Validator[T]:
    """Build the validator of a ``@business_object`` class."""
    return AnnotationBuilder(cls).build()
