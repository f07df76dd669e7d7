"""Error taxonomy for bvalid.

Construction problems, bad arguments, dispatch failures and user code raising
during validation are kept apart so callers can tell a malformed validator
from a rule that blew up on a specific object.
"""


class BValidError(Exception):
    """Base class for every error raised by bvalid."""
    pass


class ConstructionError(BValidError):
    """Raised when a builder cannot be turned into a validator."""
    pass


class ArgumentError(BValidError, ValueError):
    """Raised when an operation receives an invalid argument."""
    pass


class DispatchError(BValidError, TypeError):
    """Raised when no validator matches the runtime type of a member value."""

    def __init__(self, value_type: type, member: str = ""):
        self.value_type = value_type
        self.member = member
        location = f" (member '{member}')" if member else ""
        super().__init__(f"no validator found for type {value_type.__qualname__}{location}")


class InvocationError(BValidError):
    """Raised when a rule predicate or member accessor raises while validating.

    The original exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)
