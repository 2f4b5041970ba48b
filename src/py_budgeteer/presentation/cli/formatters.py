from __future__ import annotations

import sys
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from py_budgeteer.domain.diagnostics import Diagnostic
from py_budgeteer.domain.errors import ValidationError
from py_budgeteer.domain.percentage_base import BaseEntry
from py_budgeteer.domain.quantize import money_quantize

__all__ = [
    "decimal_from_str",
    "human_decimal",
    "breakdown_lines",
    "print_diagnostics",
]


def decimal_from_str(value: str) -> Decimal:
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid decimal: {value}") from exc


def human_decimal(d: Decimal | None) -> str:
    if d is None:
        return "-"
    return str(money_quantize(d))


def breakdown_lines(entries: Iterable[BaseEntry], depth: int = 0) -> list[str]:
    """Indented ``name (id): amount`` lines mirroring the breakdown tree."""
    out: list[str] = []
    for entry in entries:
        label = f"{entry.name} ({entry.id})" if entry.name else entry.id
        out.append(f"{'  ' * depth}- {label}: {human_decimal(entry.amount)}")
        out.extend(breakdown_lines(entry.children, depth + 1))
    return out


def print_diagnostics(diagnostics: Iterable[Diagnostic]) -> None:
    for d in diagnostics:
        print(f"[WARN] {d.kind.value} {d.subject}: {d.message}", file=sys.stderr)
