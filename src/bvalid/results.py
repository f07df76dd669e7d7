"""Validation results: a tree of object results addressable by path.

A path names the chain of objects from the root down to one rule, e.g.
``"Person.phones[1] [countryCodeValid]"``: dotted object names, then a space
and the rule id between brackets.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import ArgumentError

_PATH_SEPARATORS = re.compile(r"[.\s]+")


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule on one object."""
    id: str
    description: str
    valid: bool

    def is_valid(self) -> bool:
        return self.valid

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"id": self.id, "description": self.description, "valid": self.valid}

    def __str__(self) -> str:
        outcome = "valid" if self.valid else "invalid"
        if self.id:
            return f"[{self.id}] {self.description} => {outcome}"
        return f"{self.description} => {outcome}"


class ObjectResult:
    """Results of the rules of one object plus the results of its members."""

    def __init__(self, name: str = ""):
        self._name = name
        self._rule_results: list[RuleResult] = []
        self._member_results: list[ObjectResult] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def rule_results(self) -> list[RuleResult]:
        return list(self._rule_results)

    @property
    def member_results(self) -> list["ObjectResult"]:
        return list(self._member_results)

    def add_rule_result(self, rule_result: RuleResult) -> None:
        self._rule_results.append(rule_result)

    def add_member_result(self, member_result: "ObjectResult") -> None:
        self._member_results.append(member_result)

    def is_valid(self) -> bool:
        """True if every rule of this object and of all its members holds."""
        return (all(rule.valid for rule in self._rule_results)
                and all(member.is_valid() for member in self._member_results))

    def get_rule_results(self) -> list[RuleResult]:
        return self.rule_results

    def get_member_results(self) -> list["ObjectResult"]:
        return self.member_results

    def get_invalid_rules(self) -> list[RuleResult]:
        """Failing rules of this object followed by those of its members, depth first."""
        failures = [rule for rule in self._rule_results if not rule.valid]
        for member in self._member_results:
            failures.extend(member.get_invalid_rules())
        return failures

    def get_nb_of_tests(self) -> int:
        """Number of rules evaluated on this object and all its members."""
        return len(self._rule_results) + sum(member.get_nb_of_tests() for member in self._member_results)

    def get_rule_result(self, path: str) -> RuleResult | None:
        """Find a rule result by path, e.g. ``"Person.phones[1] [countryCodeValid]"``.

        Returns:
            The matching RuleResult, or None if the addressed object has no
            rule with that id.

        Raises:
            ArgumentError: if the path does not start with this result's name,
                is too short, or names a member that does not exist.
        """
        if path is None:
            raise ArgumentError("Rule path must not be None")
        tokens = [token for token in _PATH_SEPARATORS.split(path.strip()) if token]
        return self._lookup(tokens, path)

    def _lookup(self, tokens: list[str], path: str) -> RuleResult | None:
        if not tokens or tokens[0] != self._name:
            raise ArgumentError(f"Rule path '{path}' does not start with root name '{self._name}'")
        if len(tokens) == 1:
            raise ArgumentError(f"Rule path '{path}' must end with a bracketed rule id")

        head = tokens[1]
        if _is_rule_token(head):
            rule_id = head[1:-1]
            for rule_result in self._rule_results:
                if rule_result.id == rule_id:
                    return rule_result
            return None

        for member in self._member_results:
            if member.name == head:
                return member._lookup(tokens[1:], path)
        raise ArgumentError(f"Rule path '{path}' does not match any member of '{self._name}'")

    def assert_valid_or_throw(self, factory: Callable[[str], BaseException]) -> None:
        """Raise ``factory(str(self))`` if this result is not valid."""
        if not self.is_valid():
            raise factory(str(self))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self._name,
            "valid": self.is_valid(),
            "rules": [rule.to_dict() for rule in self._rule_results],
            "members": [member.to_dict() for member in self._member_results],
        }

    def iter_lines(self, prefix: str = ""):
        """Yield one report line per rule, members prefixed by dotted ancestor names."""
        for rule_result in self._rule_results:
            yield f"{prefix}{self._name} {rule_result}"
        sub_prefix = f"{prefix}{self._name}."
        for member in self._member_results:
            yield from member.iter_lines(sub_prefix)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectResult):
            return NotImplemented
        return (self._name == other._name
                and self._rule_results == other._rule_results
                and self._member_results == other._member_results)

    __hash__ = None

    def __str__(self) -> str:
        return "".join(f"{line}\n" for line in self.iter_lines())

    def __repr__(self) -> str:
        return (f"ObjectResult(name={self._name!r}, rules={len(self._rule_results)}, "
                f"members={len(self._member_results)}, valid={self.is_valid()})")


def _is_rule_token(token: str) -> bool:
    return len(token) >= 2 and token.startswith("[") and token.endswith("]")


ResultNode = ObjectResult
