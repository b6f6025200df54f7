"""
Exception hierarchy for the closure library.

Configuration problems are fatal at construction (or at ``read()``), a
non-finite linear solve is fatal for the step. Numerical degeneracies and
realizability violations are handled locally and never raised.
"""


class TurbClosureError(Exception):
    """Base class for all closure errors."""


class ConfigurationError(TurbClosureError):
    """Missing, non-finite or otherwise invalid model coefficient/setting."""


class UnknownModelError(ConfigurationError):
    """Model name not present in the registry."""


class LinearSolveError(TurbClosureError):
    """The linear solver returned a non-finite solution."""

    def __init__(self, field_name: str, message: str = ""):
        self.field_name = field_name
        super().__init__(
            f"Linear solve for '{field_name}' failed" + (f": {message}" if message else "")
        )


class FieldNotAvailable(TurbClosureError, AttributeError):
    """Requested a field the active closure variant does not transport."""
