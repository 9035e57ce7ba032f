"""
Authorization errors.

Evaluation itself does not raise for data it cannot interpret; these are
raised at load time (policies, configuration) or by storage backends.
"""

from typing import Any


class IAMError(Exception):
    """Base class for all engine errors."""


class PolicyValidationError(IAMError, ValueError):
    """A policy document is structurally invalid."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConfigurationError(IAMError):
    """The URN mapping configuration is invalid."""


class SystemPolicyError(IAMError):
    """Attempt to modify or delete a system policy."""


class FilterCompilationError(IAMError):
    """A predicate cannot be rendered for a storage backend."""


class ExpressionError(IAMError, ValueError):
    """A filter expression literal cannot be parsed."""
