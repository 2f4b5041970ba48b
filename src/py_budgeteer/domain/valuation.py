"""Monetary value of a single cost line.

Public API:
- select_rate: unit rate or alternate (actual-cost) rate for a line.
- base_amount: ``quantity * count * rate + overtime_amount`` in the line's own currency.
- valuate: value of a line in a target currency, rolling up children.
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from .currencies import convert, normalize_code
from .diagnostics import Diagnostics
from .models import CostLine
from .quantize import ZERO

__all__ = ["select_rate", "base_amount", "valuate"]


def select_rate(line: CostLine, use_alternate_rate: bool = False) -> Decimal:
    if use_alternate_rate and line.alternate_rate is not None:
        return line.alternate_rate  # type: ignore[return-value]
    return line.unit_rate  # type: ignore[return-value]


def base_amount(line: CostLine, use_alternate_rate: bool = False) -> Decimal:
    """Unconverted leaf amount; ignores children and percentage semantics."""
    rate = select_rate(line, use_alternate_rate)
    return line.quantity * line.count * rate + line.overtime_amount  # type: ignore[operator]


def valuate(
    line: CostLine,
    target_currency: str,
    rates: Mapping[str, Decimal],
    use_alternate_rate: bool = False,
    *,
    rollup: bool = True,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Return the monetary value of ``line`` expressed in ``target_currency``.

    - Percentage lines return their ``calculated_amount`` (0 when unresolved);
      the percentage base itself is resolved beforehand by the caller.
    - In roll-up mode a line with children is the sum of its children and its
      own quantity/rate fields are ignored.
    - A line with its own currency has its *rate* converted before the
      multiplication, so per-unit rounding is preserved.
    """
    if rollup and line.children:
        total = ZERO
        for child in line.children:
            total += valuate(
                child,
                target_currency,
                rates,
                use_alternate_rate,
                rollup=True,
                diagnostics=diagnostics,
            )
        return total

    if line.is_percentage:
        return line.calculated_amount if line.calculated_amount is not None else ZERO  # type: ignore[return-value]

    rate = select_rate(line, use_alternate_rate)
    if line.currency and line.currency != normalize_code(target_currency):
        rate = convert(rate, line.currency, target_currency, rates, diagnostics=diagnostics)
    return line.quantity * line.count * rate + line.overtime_amount  # type: ignore[operator]
