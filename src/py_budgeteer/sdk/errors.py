"""SDK public error classes and exception mapping.

Consumers of the SDK (CLI, HTTP handlers, report generators) receive these
instead of domain exceptions; ``map_exception`` keeps the original message.

Public exceptions:
- UserInputError: malformed snapshot, amount or argument
- DomainViolation: a computation precondition does not hold (e.g. unreachable target)
- NotFound: referenced file or resource is missing
- UnexpectedError: anything not classified above
"""
from __future__ import annotations

from py_budgeteer.domain.errors import DomainError, ValidationError

__all__ = [
    "UserInputError",
    "DomainViolation",
    "NotFound",
    "UnexpectedError",
    "map_exception",
]


class UserInputError(Exception):
    """Raised when user input is invalid or cannot be parsed."""


class DomainViolation(Exception):
    """Raised when a computation precondition is violated."""


class NotFound(Exception):
    """Raised when a referenced resource does not exist."""


class UnexpectedError(Exception):
    """Raised when an unexpected error occurs inside the SDK."""


def map_exception(exc: Exception) -> Exception:
    """Map internal exceptions to public SDK exceptions.

    Rules:
    - ValidationError -> UserInputError
    - DomainError (InvalidTarget included) -> DomainViolation
    - FileNotFoundError -> NotFound
    - ValueError -> UserInputError
    - any other -> UnexpectedError
    """
    msg = str(exc)
    if isinstance(exc, ValidationError):
        return UserInputError(msg)
    if isinstance(exc, DomainError):
        return DomainViolation(msg)
    if isinstance(exc, FileNotFoundError):
        return NotFound(msg)
    if isinstance(exc, ValueError):
        return UserInputError(msg)
    return UnexpectedError(msg)
