"""Resolution of ``module:attribute`` references given on the command line."""

import importlib
import inspect
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from .annotations import is_business_object, validator_for
from .builder import ValidatorBuilder
from .errors import BValidError
from .validator import Validator

logger = logging.getLogger(__name__)


class LoadError(BValidError):
    """Raised when a reference cannot be imported or resolved."""
    pass


def load_reference(reference: str, search_path: Path | None = None) -> Any:
    """Import ``"package.module:attribute"`` and return the attribute.

    Dotted attribute paths (``"module:Factory.create"``) are followed.
    ``search_path`` is put in front of ``sys.path`` for the import.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise LoadError(f"Invalid reference '{reference}', expected 'module:attribute'")

    if search_path is not None:
        location = str(Path(search_path).resolve())
        if location not in sys.path:
            sys.path.insert(0, location)

    try:
        target = importlib.import_module(module_name)
    except ImportError as e:
        raise LoadError(f"Cannot import module '{module_name}': {e}") from e

    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise LoadError(f"Module '{module_name}' has no attribute '{attribute}'") from e

    logger.debug(f"Loaded {reference}")
    return target


def _is_factory(obj: Any) -> bool:
    if not callable(obj) or isinstance(obj, type):
        return False
    try:
        signature = inspect.signature(obj)
    except (TypeError, ValueError):
        return False
    return all(p.default is not inspect.Parameter.empty
               or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
               for p in signature.parameters.values())


def resolve_validator(obj: Any) -> Validator:
    """Turn a loaded object into a Validator.

    Accepts a Validator, a ValidatorBuilder, a ``@business_object`` class or a
    zero-argument factory returning one of those.
    """
    if isinstance(obj, Validator):
        return obj
    if isinstance(obj, ValidatorBuilder):
        return obj.build()
    if isinstance(obj, type):
        if is_business_object(obj):
            return validator_for(obj)
        raise LoadError(f"Class {obj.__qualname__} is not a business object")
    if _is_factory(obj):
        produced = obj()
        if _is_factory(produced):
            raise LoadError(f"Factory {obj!r} returned another factory")
        return resolve_validator(produced)
    raise LoadError(f"Cannot make a validator out of {type(obj).__name__}")


def resolve_objects(obj: Any) -> Any:
    """Turn a loaded object into the object (or iterable of objects) to validate.

    A zero-argument factory is called; generators are materialised so the
    result can be reported on after validation.
    """
    if _is_factory(obj):
        obj = obj()
    if obj is None:
        raise LoadError("No object to validate")
    if isinstance(obj, Iterator):
        return list(obj)
    return obj
