"""Mutable validator builders and the builder-graph compiler.

Builders may reference themselves or each other in cycles. ``build()``
compiles the reachable builder graph once per builder identity: a validator
shell is registered before its members are compiled, so a back reference
resolves to the shell instead of recursing forever.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from operator import attrgetter
from typing import Generic, TypeVar

from .errors import ArgumentError, ConstructionError
from .members import Accessor, MemberDescriptor, check_name
from .rules import Predicate, Rule
from .validator import Validator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MemberDeclaration:
    """A member as declared on a builder: name, accessor and candidate builders."""

    __slots__ = ("name", "accessor", "builders")

    def __init__(self, name: str, accessor: Accessor, builders: tuple[ValidatorBuilder, ...]):
        self.name = name
        self.accessor = accessor
        self.builders = builders

    def __repr__(self) -> str:
        return f"MemberDeclaration(name={self.name!r}, candidates={len(self.builders)})"


class ValidatorBuilder(Generic[T]):
    """Accumulates rules and members for a business object type, then builds a Validator.

    Builders compare and hash by identity, which is what the compiler keys on.
    """

    def __init__(self, type_: type[T] | None = None, name: str | None = None):
        self.type = type_
        self._name = None
        if name is not None:
            self.set_name(name)
        self._rules: dict[Hashable, Rule] = {}
        self._members: dict[str, MemberDeclaration] = {}

    @classmethod
    def extend(cls, parent: ValidatorBuilder, type_: type[T], name: str | None = None) -> ValidatorBuilder[T]:
        """Start a builder for a subtype with the rules and members of ``parent``."""
        if parent is None:
            raise ArgumentError("Parent builder must not be None")
        builder = cls(type_, name)
        builder._rules.update(parent._rules)
        builder._members.update(parent._members)
        return builder

    @property
    def name(self) -> str:
        """Report label; defaults to the name of the validated type."""
        if self._name is not None:
            return self._name
        return self.type.__name__ if self.type is not None else ""

    def set_name(self, name: str) -> ValidatorBuilder[T]:
        self._name = check_name(name, "business object name")
        return self

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    @property
    def members(self) -> list[MemberDeclaration]:
        return list(self._members.values())

    @property
    def rules_count(self) -> int:
        return len(self._rules)

    @property
    def members_count(self) -> int:
        return len(self._members)

    def is_empty(self) -> bool:
        return not self._rules and not self._members

    def add_rule(self, id: str | Predicate | None, predicate: Predicate | str | None = None,
                 description: str = "") -> ValidatorBuilder[T]:
        """Add a rule.

        Accepts ``add_rule(id, predicate, description)`` and, without an id,
        ``add_rule(predicate, description)``. A rule whose id is already
        declared on this builder is ignored.

        Raises:
            ArgumentError: if the predicate is None or not callable,
                or if the id contains path separators or whitespace.
        """
        if callable(id) and not isinstance(id, str):
            id, predicate, description = "", id, predicate if predicate is not None else description
        if predicate is None or not callable(predicate):
            raise ArgumentError("Rule predicate must not be None and must be callable")
        if id is not None and not isinstance(id, str):
            raise ArgumentError(f"Rule id must be a string, got {type(id).__name__}")
        if id:
            check_name(id, "Rule id")

        rule = Rule(id or "", description or "", predicate)
        if rule.key in self._rules:
            logger.debug(f"Rule {rule} already declared on '{self.name}', ignored")
        else:
            self._rules[rule.key] = rule
        return self

    def add_member(self, name: str, accessor: Accessor | str, *builders: ValidatorBuilder) -> ValidatorBuilder[T]:
        """Declare a member validated by one of ``builders``, chosen by runtime type.

        ``accessor`` is a callable taking the business object, or an attribute
        name. A member whose name is already declared is ignored.

        Raises:
            ArgumentError: if name, accessor or a builder is None, or no
                builder is given.
        """
        if name is None or accessor is None:
            raise ArgumentError("Member name and accessor must not be None")
        if not builders or any(builder is None for builder in builders):
            raise ArgumentError(f"Member '{name}' needs one or more non-None validator builders")
        if not all(isinstance(builder, ValidatorBuilder) for builder in builders):
            raise ArgumentError(f"Member '{name}' candidates must be ValidatorBuilder instances")
        check_name(name, "member name")
        if isinstance(accessor, str):
            accessor = attrgetter(accessor)
        elif not callable(accessor):
            raise ArgumentError(f"Member '{name}' accessor must be callable or an attribute name")

        if name in self._members:
            logger.debug(f"Member '{name}' already declared on '{self.name}', ignored")
        else:
            self._members[name] = MemberDeclaration(name, accessor, tuple(builders))
        return self

    def build(self) -> Validator[T]:
        """Compile this builder and every builder it reaches into validators.

        Raises:
            ConstructionError: if a reached builder has no type, no rules and
                no members, or a member whose candidates are all empty.
        """
        validator = _GraphCompiler().compile(self)
        logger.debug(f"Built validator '{validator.name}' for {validator.type.__name__}")
        return validator

    def __repr__(self) -> str:
        type_name = self.type.__name__ if self.type is not None else None
        return (f"{type(self).__name__}(type={type_name}, name={self.name!r}, "
                f"rules={self.rules_count}, members={self.members_count})")


class _GraphCompiler:
    """One compilation pass; ``compiled`` is keyed by builder identity."""

    def __init__(self):
        self.compiled: dict[ValidatorBuilder, Validator] = {}

    def compile(self, builder: ValidatorBuilder) -> Validator:
        existing = self.compiled.get(builder)
        if existing is not None:
            return existing
        if builder.type is None:
            raise ConstructionError("type is not set")

        validator = Validator(builder.type, builder.name, builder.rules)
        self.compiled[builder] = validator

        members = [self._compile_member(builder, declaration) for declaration in builder.members]
        if builder.is_empty():
            raise ConstructionError(
                f"Rules or members must be provided for business object '{builder.name}'"
            )
        validator._wire(members)
        logger.debug(f"Compiled '{builder.name}': {len(validator.rules)} rules, {len(members)} members")
        return validator

    def _compile_member(self, owner: ValidatorBuilder, declaration: MemberDeclaration) -> MemberDescriptor:
        candidates = [candidate for candidate in declaration.builders if not candidate.is_empty()]
        if not candidates:
            raise ConstructionError(
                f"All sub validators are empty for member '{declaration.name}' of '{owner.name}'"
            )
        validators: dict[type, Validator] = {}
        for candidate in candidates:
            validators[_candidate_type(candidate)] = self.compile(candidate)
        return MemberDescriptor(declaration.name, declaration.accessor, validators)


def _candidate_type(builder: ValidatorBuilder) -> type:
    if builder.type is None:
        raise ConstructionError("type is not set")
    return builder.type


