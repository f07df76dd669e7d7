"""bvalid - Business rule validation for object graphs.

bvalid checks graphs of business objects against named rules. Validators are
assembled with builders (or decorators), follow members recursively with
cycle protection and runtime-type dispatch, and produce a result tree whose
rules can be looked up by path.
"""

__version__ = "0.1.0"
__author__ = "bvalid contributors"
__description__ = "Business rule validation for object graphs"

from bvalid.annotations import (
    AnnotationBuilder,
    business_member,
    business_object,
    business_rule,
    validator_for,
)
from bvalid.builder import ValidatorBuilder
from bvalid.config import BValidConfig
from bvalid.errors import (
    ArgumentError,
    BValidError,
    ConstructionError,
    DispatchError,
    InvocationError,
)
from bvalid.members import MemberDescriptor
from bvalid.results import ObjectResult, ResultNode, RuleResult
from bvalid.rules import Rule
from bvalid.validator import Validator

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "AnnotationBuilder",
    "ArgumentError",
    "BValidConfig",
    "BValidError",
    "ConstructionError",
    "DispatchError",
    "InvocationError",
    "MemberDescriptor",
    "ObjectResult",
    "ResultNode",
    "Rule",
    "RuleResult",
    "Validator",
    "ValidatorBuilder",
    "business_member",
    "business_object",
    "business_rule",
    "validator_for",
]
