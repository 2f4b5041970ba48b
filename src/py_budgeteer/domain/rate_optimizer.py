"""Inverse solver for agency/margin percentages.

Public API:
- solve_margin_for_target: margin percentage turning a base cost into a target total.
- OptimalRates / calculate_optimal_rates: agency fixed at 0, whole gap on the margin.

Closed form, no iteration: ``margin = (target / base - 1) * 100``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidTarget
from .quantize import HUNDRED, ZERO, to_decimal

__all__ = ["OptimalRates", "solve_margin_for_target", "calculate_optimal_rates"]

# relative to the target; Decimal division rounds at the context precision
_ROUND_TRIP_TOLERANCE = Decimal("1e-20")


@dataclass(slots=True, frozen=True)
class OptimalRates:
    agency_percent: Decimal
    margin_percent: Decimal


def solve_margin_for_target(
    base_cost: Decimal | int | str | float,
    target_total: Decimal | int | str | float,
) -> Decimal:
    """Return the margin percentage reproducing ``target_total`` from ``base_cost``.

    Raises:
        InvalidTarget: when ``base_cost <= 0`` or ``target_total <= base_cost``.
    """
    base = to_decimal(base_cost)
    target = to_decimal(target_total)
    if base <= ZERO:
        raise InvalidTarget(f"Base cost must be positive: {base}")
    if target <= base:
        raise InvalidTarget(f"Target total {target} must exceed base cost {base}")
    return (target / base - 1) * HUNDRED


def calculate_optimal_rates(
    base_cost: Decimal | int | str | float,
    target_total: Decimal | int | str | float,
) -> OptimalRates:
    """Agency 0 and the margin that reaches ``target_total``, checked by recomputation."""
    margin = solve_margin_for_target(base_cost, target_total)
    base = to_decimal(base_cost)
    target = to_decimal(target_total)
    reached = base * (1 + margin / HUNDRED)
    if abs(reached - target) > target * _ROUND_TRIP_TOLERANCE:
        raise InvalidTarget(f"Target total {target} cannot be reached exactly (got {reached})")
    return OptimalRates(agency_percent=ZERO, margin_percent=margin)
