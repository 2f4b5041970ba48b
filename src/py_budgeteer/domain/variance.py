from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .quantize import HUNDRED, ZERO, to_decimal

__all__ = ["Variance", "calculate_variance"]


@dataclass(slots=True, frozen=True)
class Variance:
    """Drift between an initial (estimated) and a current (actual) amount."""

    initial_amount: Decimal
    current_amount: Decimal
    difference: Decimal
    percentage_change: Decimal


def calculate_variance(
    initial: Decimal | int | str | float,
    current: Decimal | int | str | float,
) -> Variance:
    """``current - initial`` and its share of ``initial`` in percent (0 when initial is 0)."""
    a = to_decimal(initial)
    b = to_decimal(current)
    difference = b - a
    change = difference / a * HUNDRED if a != ZERO else ZERO
    return Variance(initial_amount=a, current_amount=b, difference=difference, percentage_change=change)
