"""Non-fatal conditions collected alongside numeric results.

Aggregate operations are total over well-formed trees: a missing currency,
a dangling selection or a cyclic selection never aborts a computation. The
condition is appended to an optional :class:`Diagnostics` collector so a UI
can warn without breaking.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

__all__ = ["DiagnosticKind", "Diagnostic", "Diagnostics"]


class DiagnosticKind(str, Enum):
    UNKNOWN_CURRENCY = "UNKNOWN_CURRENCY"
    UNRESOLVED_REFERENCE = "UNRESOLVED_REFERENCE"
    CYCLIC_REFERENCE = "CYCLIC_REFERENCE"
    UNKNOWN_CHARGE_TYPE = "UNKNOWN_CHARGE_TYPE"


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """A single non-fatal condition.

    Attributes:
        kind: Category of the condition.
        subject: Identifier the condition is about (currency code, node id, bucket id).
        message: Human-readable description.
    """

    kind: DiagnosticKind
    subject: str
    message: str


@dataclass(slots=True)
class Diagnostics:
    """Append-only collector; duplicates of the same (kind, subject) are kept once."""

    items: list[Diagnostic] = field(default_factory=list)

    def add(self, kind: DiagnosticKind, subject: str, message: str) -> None:
        for existing in self.items:
            if existing.kind == kind and existing.subject == subject:
                return
        self.items.append(Diagnostic(kind=kind, subject=subject, message=message))

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.items if d.kind == kind]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)
