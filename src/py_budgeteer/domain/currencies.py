"""Rate-table conversion.

Public API:
- RateTable: read-only mapping of normalized currency code -> rate to base.
- build_rate_table: build a RateTable from a ``{code: rate}`` mapping.
- convert: convert an amount between two codes through the common base.

Conversion never raises for missing codes: the original amount is returned and
an UNKNOWN_CURRENCY diagnostic is recorded, so one bad line cannot abort a
whole budget computation. The global Decimal context is not modified.
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType

from .diagnostics import DiagnosticKind, Diagnostics
from .errors import ValidationError
from .quantize import ZERO, money_quantize, rate_quantize, to_decimal

__all__ = ["RateTable", "normalize_code", "build_rate_table", "convert"]

RateTable = Mapping[str, Decimal]


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def build_rate_table(source: Mapping[str, Decimal | int | str | float]) -> RateTable:
    """Return a read-only rate table with upper-cased codes and rates at RATE_SCALE.

    Raises:
        ValidationError: for a non-mapping source or a non-numeric rate.
    """
    if not isinstance(source, Mapping):
        raise ValidationError(f"Rate table must be a mapping of code -> rate, got {type(source).__name__}")
    return MappingProxyType({normalize_code(k): rate_quantize(v) for k, v in source.items()})


def convert(
    amount: Decimal | int | str | float,
    from_code: str | None,
    to_code: str | None,
    rates: Mapping[str, Decimal | int | str | float],
    *,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Convert ``amount`` from one currency to another via the common base.

    Args:
        amount: Amount expressed in ``from_code``.
        from_code: Source currency code (case-insensitive).
        to_code: Target currency code (case-insensitive).
        rates: Mapping code -> rate relative to the base currency.
        diagnostics: Optional collector for UNKNOWN_CURRENCY conditions.

    Returns:
        ``amount`` unchanged when codes are equal; otherwise
        ``amount / rate[from] * rate[to]`` quantized to money scale. When either
        code is missing (or its rate is not positive) the original amount is
        returned unconverted.
    """
    value = to_decimal(amount)
    src = normalize_code(from_code)
    dst = normalize_code(to_code)
    if src == dst:
        return value

    src_rate = _lookup_rate(rates, src)
    dst_rate = _lookup_rate(rates, dst)
    for code, rate in ((src, src_rate), (dst, dst_rate)):
        if rate is None:
            if diagnostics is not None:
                diagnostics.add(
                    DiagnosticKind.UNKNOWN_CURRENCY,
                    code,
                    f"Currency {code!r} missing from rate table; amount left unconverted",
                )
            return value
        if rate <= ZERO:
            if diagnostics is not None:
                diagnostics.add(
                    DiagnosticKind.UNKNOWN_CURRENCY,
                    code,
                    f"Non-positive rate for currency {code!r}; amount left unconverted",
                )
            return value

    return money_quantize(value / src_rate * dst_rate)  # type: ignore[operator]


def _lookup_rate(rates: Mapping[str, Decimal | int | str | float], code: str) -> Decimal | None:
    raw = rates.get(code)
    if raw is None:
        # tolerate non-normalized keys in caller-supplied tables
        for key, candidate in rates.items():
            if normalize_code(key) == code:
                raw = candidate
                break
    return None if raw is None else to_decimal(raw)
