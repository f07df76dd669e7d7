"""Compiled validators and the recursive validation engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from .errors import ArgumentError, BValidError, InvocationError
from .members import MemberDescriptor, is_group
from .results import ObjectResult, RuleResult
from .rules import Rule

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Validator(Generic[T]):
    """Immutable set of rules and members for one business object type.

    Instances are produced by ``ValidatorBuilder.build()``. A validator may be
    reachable from its own members (directly or through other validators); the
    graph is shared, never copied.
    """

    __slots__ = ("_type", "_name", "_rules", "_members")

    def __init__(self, type_: type[T], name: str, rules: Sequence[Rule],
                 members: Sequence[MemberDescriptor] = ()):
        self._type = type_
        self._name = name
        self._rules = tuple(rules)
        self._members = tuple(members)

    def _wire(self, members: Sequence[MemberDescriptor]) -> None:
        """Attach members once the whole graph has been compiled."""
        if self._members:
            raise RuntimeError(f"Validator '{self._name}' is already wired")
        self._members = tuple(members)

    @property
    def type(self) -> type[T]:
        return self._type

    @property
    def name(self) -> str:
        return self._name

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def members(self) -> tuple[MemberDescriptor, ...]:
        return self._members

    def is_empty(self) -> bool:
        return not self._rules and not self._members

    def validate(self, obj: T | Iterable[T]) -> ObjectResult | list[ObjectResult]:
        """Validate a business object, or each element of a collection of them.

        A collection or tuple that is not itself an instance of the validated
        type is validated element by element (see ``validate_all``).

        Raises:
            ArgumentError: if ``obj`` is None.
            DispatchError: if a member value has no validator for its type.
            InvocationError: if a rule or a member accessor raised.
        """
        if obj is None:
            raise ArgumentError("Object to validate must not be None")
        if is_group(obj) and not isinstance(obj, self._type):
            return self.validate_all(obj)
        return _ValidationRun().visit(obj, self._name, self)

    def validate_all(self, objects: Iterable[T]) -> list[ObjectResult]:
        """Validate each non-None element independently, naming them ``name[index]``."""
        if objects is None:
            raise ArgumentError("Objects to validate must not be None")
        results = []
        for obj in objects:
            if obj is None:
                continue
            results.append(_ValidationRun().visit(obj, f"{self._name}[{len(results)}]", self))
        return results

    def __repr__(self) -> str:
        type_name = self._type.__name__ if self._type is not None else None
        return (f"Validator(type={type_name}, name={self._name!r}, "
                f"rules={len(self._rules)}, members={len(self._members)})")


class _ValidationRun:
    """State of one top-level ``validate`` call.

    ``visited`` maps ``id(obj)`` to the object itself so ids stay unique for
    the duration of the call. It is never shared between calls.
    """

    __slots__ = ("visited",)

    def __init__(self):
        self.visited: dict[int, Any] = {}

    def mark(self, obj: Any) -> bool:
        """Register ``obj``; False if it was already seen in this run."""
        key = id(obj)
        if key in self.visited:
            return False
        self.visited[key] = obj
        return True

    def visit(self, obj: Any, name: str, validator: Validator) -> ObjectResult:
        self.mark(obj)
        node = ObjectResult(name)

        for rule in validator.rules:
            node.add_rule_result(RuleResult(rule.id, rule.description, self._apply(rule, obj, name)))

        for member in validator.members:
            value = self._extract(member, obj, name)
            if value is None:
                continue
            if not self.mark(value):
                logger.debug(f"{name}.{member.name}: already validated, skipped")
                continue
            if is_group(value) and not isinstance(value, tuple(member.validators)):
                index = 0
                for element in value:
                    if element is None:
                        continue
                    if not self.mark(element):
                        logger.debug(f"{name}.{member.name}: element already validated, skipped")
                        continue
                    sub_validator = member.resolve_validator(element)
                    node.add_member_result(self.visit(element, f"{member.name}[{index}]", sub_validator))
                    index += 1
            else:
                sub_validator = member.resolve_validator(value)
                node.add_member_result(self.visit(value, member.name, sub_validator))

        return node

    @staticmethod
    def _apply(rule: Rule, obj: Any, name: str) -> bool:
        try:
            return rule.apply(obj)
        except BValidError:
            raise
        except Exception as e:
            label = rule.id or rule.description
            raise InvocationError(f"Rule '{label}' raised on '{name}': {e}", e) from e

    @staticmethod
    def _extract(member: MemberDescriptor, obj: Any, name: str) -> Any:
        try:
            return member.extract(obj)
        except BValidError:
            raise
        except Exception as e:
            raise InvocationError(f"Member '{member.name}' accessor raised on '{name}': {e}", e) from e
