"""Reusable predicates for writing business rules.

    builder.add_rule("nameDefined", lambda p: is_defined(p.name), "Name must be defined")
"""

import re
from collections.abc import Collection
from functools import lru_cache
from typing import Any


def is_defined(value: Any) -> bool:
    """True if ``value`` is not None; strings must also not be blank."""
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def is_defined_if_present(value: Any) -> bool:
    """True if ``value`` is None, or defined in the sense of ``is_defined``."""
    return value is None or is_defined(value)


def has_one_or_more_elements(values: Collection | None) -> bool:
    return values is not None and len(values) > 0


def has_defined_elements(values: Collection | None) -> bool:
    """True if ``values`` exists and holds no None element."""
    if values is None:
        return False
    return all(value is not None for value in values)


def has_one_or_more_defined_elements(values: Collection | None) -> bool:
    return has_one_or_more_elements(values) and has_defined_elements(values)


@lru_cache(maxsize=128)
def _compile(regexp: str) -> re.Pattern:
    return re.compile(regexp)


def matches(regexp: str | None, subject: str | None) -> bool:
    """True if the whole of ``subject`` matches ``regexp``; False if either is None."""
    if regexp is None or subject is None:
        return False
    return _compile(regexp).fullmatch(subject) is not None
