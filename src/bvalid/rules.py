"""Business rules: named boolean predicates over a business object."""

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from .errors import ArgumentError

Predicate = Callable[[Any], Any]


@dataclass(frozen=True, eq=False)
class Rule:
    """An immutable ``(id, description, predicate)`` triple.

    Two rules with the same non-empty id are equal, whatever their predicates.
    Rules without an id are only equal when description and predicate object
    are identical.
    """
    id: str
    description: str
    predicate: Predicate = field(repr=False)

    def __post_init__(self) -> None:
        if self.predicate is None or not callable(self.predicate):
            raise ArgumentError("Rule predicate must be a callable")
        if self.id is None:
            object.__setattr__(self, "id", "")
        if self.description is None:
            object.__setattr__(self, "description", "")

    @property
    def key(self) -> Hashable:
        """Identity of the rule among its siblings."""
        if self.id:
            return ("id", self.id)
        return ("anonymous", self.description, id(self.predicate))

    def apply(self, obj: Any) -> bool:
        """Evaluate the predicate on ``obj``. ``obj`` must not be None."""
        return bool(self.predicate(obj))

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Rule):
            return NotImplemented
        if self.id or other.id:
            return self.id == other.id
        return self.description == other.description and self.predicate is other.predicate

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        if self.id:
            return f"[{self.id}] {self.description}"
        return self.description
