"""Domain exception hierarchy.

Only structurally impossible input and the rate optimizer precondition are
raised; stale or dangling references are reported as diagnostics instead
(see ``py_budgeteer.domain.diagnostics``).
"""

from __future__ import annotations

__all__ = ["DomainError", "ValidationError", "InvalidTarget"]


class DomainError(Exception):
    """Base class for engine errors."""


class ValidationError(DomainError):
    """Raised for malformed snapshot input (bad ids, kinds, amounts)."""


class InvalidTarget(DomainError):
    """Raised when a target total cannot be reached from the given base cost."""
