"""Overtime hourly rates derived from a daily rate.

The hourly rate is ``daily_rate / base_hours``; overtime hours are paid at
x1.5 and x2 of it. The result of :func:`overtime_total` is what a line carries
in ``overtime_amount``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import ValidationError
from .quantize import ZERO, to_decimal

__all__ = ["OvertimeRates", "overtime_rates", "overtime_total"]

_X1_5 = Decimal("1.5")
_X2 = Decimal("2")


@dataclass(slots=True, frozen=True)
class OvertimeRates:
    normal: Decimal
    x1_5: Decimal
    x2: Decimal


def overtime_rates(
    daily_rate: Decimal | int | str | float,
    base_hours: Decimal | int | str | float = 8,
) -> OvertimeRates:
    """Hourly rates for a working day of ``base_hours``.

    Raises:
        ValidationError: when ``base_hours`` is not positive.
    """
    hours = to_decimal(base_hours)
    if hours <= ZERO:
        raise ValidationError(f"Base hours must be positive: {hours}")
    hourly = to_decimal(daily_rate) / hours
    return OvertimeRates(normal=hourly, x1_5=hourly * _X1_5, x2=hourly * _X2)


def overtime_total(
    normal_hours: Decimal | int | str | float | None,
    x1_5_hours: Decimal | int | str | float | None,
    x2_hours: Decimal | int | str | float | None,
    rates: OvertimeRates | None,
) -> Decimal:
    """Amount of the given hours at each rate; no rates gives 0."""
    if rates is None:
        return ZERO
    return (
        to_decimal(normal_hours) * rates.normal
        + to_decimal(x1_5_hours) * rates.x1_5
        + to_decimal(x2_hours) * rates.x2
    )
