from __future__ import annotations

import decimal as dec
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from py_budgeteer.infrastructure.config.settings import get_settings

from .errors import ValidationError

__all__ = ["to_decimal", "money_quantize", "rate_quantize", "ZERO", "HUNDRED"]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(x: Decimal | int | str | float | None | Any, *, default: Decimal = ZERO) -> Decimal:
    """Coerce a numeric input into Decimal; ``None`` yields ``default``.

    Floats go through ``str()`` so that 0.1 stays 0.1.
    """
    if x is None:
        return default
    if isinstance(x, bool):
        raise ValidationError(f"Unsupported amount type: {type(x)!r}")
    if isinstance(x, Decimal):
        return x
    if isinstance(x, (int, float)):
        return Decimal(str(x))
    if isinstance(x, str):
        try:
            return Decimal(x.strip())
        except dec.InvalidOperation as exc:
            raise ValidationError(f"Invalid decimal: {x!r}") from exc
    raise ValidationError(f"Unsupported amount type: {type(x)!r}")


def _make_quant(scale: int) -> Decimal:
    # sign=0, digits=(1,), exponent=-scale -> 10^-scale
    return Decimal((0, (1,), -scale))


def money_quantize(value: Decimal | int | str | float) -> Decimal:
    s = get_settings()
    rounding_mode = getattr(dec, s.rounding, ROUND_HALF_UP)
    return to_decimal(value).quantize(_make_quant(s.money_scale), rounding=rounding_mode)


def rate_quantize(value: Decimal | int | str | float) -> Decimal:
    s = get_settings()
    rounding_mode = getattr(dec, s.rounding, ROUND_HALF_UP)
    return to_decimal(value).quantize(_make_quant(s.rate_scale), rounding=rounding_mode)
