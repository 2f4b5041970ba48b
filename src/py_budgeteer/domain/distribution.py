"""Allocation of line amounts into expense buckets.

Public API:
- AmountsOf: callable returning (base amount, social charges) for a line.
- line_amounts: build an AmountsOf valuing lines in a target currency.
- distribute: bucket amounts of one line and its whole subtree.
- DistributionReport / distribution_report: bucket totals across a budget.
- bucket_social_charges: charges carried into one bucket across a budget.

Buckets are independent from the category tree. A FIXED distribution with
charges included takes a share of the charges proportional to
``amount / base``; a zero base makes that share 0.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .diagnostics import DiagnosticKind, Diagnostics
from .models import SOCIAL_CHARGES_CATEGORY_ID, Category, CostLine, DistributionKind, ExpenseBucket
from .quantize import HUNDRED, ZERO, to_decimal
from .social_charges import ChargeRates, charge_amount, index_charge_rates, subtree_charges
from .valuation import base_amount, valuate

__all__ = [
    "AmountsOf",
    "line_amounts",
    "distribute",
    "DistributionReport",
    "distribution_report",
    "bucket_social_charges",
]

AmountsOf = Callable[[CostLine], tuple[Decimal, Decimal]]


def _own_value(line: CostLine) -> Decimal:
    if line.children:
        return sum((_own_value(child) for child in line.children), ZERO)
    if line.is_percentage:
        return line.calculated_amount if line.calculated_amount is not None else ZERO  # type: ignore[return-value]
    return base_amount(line)


def _own_amounts(charge_rates: ChargeRates | None, diagnostics: Diagnostics | None) -> AmountsOf:
    """Unconverted roll-up value of a line; subtree charges only when a charge table is given."""
    index = index_charge_rates(charge_rates) if charge_rates is not None else None

    def _amounts(line: CostLine) -> tuple[Decimal, Decimal]:
        if index is None:
            return _own_value(line), ZERO
        return _own_value(line), subtree_charges(line, index, diagnostics=diagnostics)

    return _amounts


def line_amounts(
    target_currency: str,
    rates: Mapping[str, Decimal],
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    diagnostics: Diagnostics | None = None,
) -> AmountsOf:
    """Return a function giving a line's converted value and its subtree charges."""
    index = index_charge_rates(charge_rates)

    def _amounts(line: CostLine) -> tuple[Decimal, Decimal]:
        value = valuate(line, target_currency, rates, use_alternate_rate, diagnostics=diagnostics)
        charges = subtree_charges(
            line,
            index,
            use_alternate_rate,
            target_currency=target_currency,
            rates=rates,
            diagnostics=diagnostics,
        )
        return value, charges

    return _amounts


def _bucket_ids(bucket_defs: Iterable[ExpenseBucket] | Mapping[str, ExpenseBucket] | None) -> set[str] | None:
    if bucket_defs is None:
        return None
    if isinstance(bucket_defs, Mapping):
        return set(bucket_defs.keys())
    return {b.id for b in bucket_defs}


def _distribute_into(
    result: dict[str, Decimal],
    line: CostLine,
    known: set[str] | None,
    base: Decimal,
    charges: Decimal,
    amounts_of: AmountsOf,
    diagnostics: Diagnostics | None,
) -> None:
    include_charges = line.include_social_charges_in_distribution
    for dist in line.distributions:
        if known is not None and dist.bucket_id not in known:
            if diagnostics is not None:
                diagnostics.add(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    dist.bucket_id,
                    f"Expense bucket {dist.bucket_id!r} of line {line.id!r} does not exist; contributes 0",
                )
            continue
        share: Decimal = dist.amount  # type: ignore[assignment]
        if dist.kind == DistributionKind.PERCENTAGE:
            amount = (base + (charges if include_charges else ZERO)) * share / HUNDRED
        else:
            amount = share
            if include_charges and base != ZERO:
                amount += charges * share / base
        result[dist.bucket_id] = result.get(dist.bucket_id, ZERO) + amount

    for child in line.children:
        child_base, child_charges = amounts_of(child)
        _distribute_into(result, child, known, child_base, child_charges, amounts_of, diagnostics)


def distribute(
    line: CostLine,
    bucket_defs: Iterable[ExpenseBucket] | Mapping[str, ExpenseBucket] | None,
    base_amount: Decimal | int | str | float,
    social_charge_amount: Decimal | int | str | float = ZERO,
    *,
    amounts_of: AmountsOf | None = None,
    charge_rates: ChargeRates | None = None,
    diagnostics: Diagnostics | None = None,
) -> dict[str, Decimal]:
    """Return the amount attributed to each bucket by ``line`` and its descendants.

    Args:
        line: Line whose ``distributions`` are applied.
        bucket_defs: Known buckets; distributions to other ids contribute 0.
            ``None`` accepts every bucket id.
        base_amount: Distributable amount of ``line``.
        social_charge_amount: Social charges of ``line``, used when the line
            carries its charges into distribution.
        amounts_of: Gives (base, charges) for descendants; defaults to their
            unconverted roll-up value (children summed, own quantity and rate
            ignored) with subtree charges when ``charge_rates`` is given.
        charge_rates: Charge table for the default ``amounts_of``; ignored when
            ``amounts_of`` is given.
        diagnostics: Optional collector for unknown bucket ids.

    Returns:
        Mapping bucket id -> amount, same-bucket contributions summed.
    """
    result: dict[str, Decimal] = {}
    _distribute_into(
        result,
        line,
        _bucket_ids(bucket_defs),
        to_decimal(base_amount),
        to_decimal(social_charge_amount),
        amounts_of or _own_amounts(charge_rates, diagnostics),
        diagnostics,
    )
    return result


@dataclass(slots=True, frozen=True)
class DistributionReport:
    """Bucket totals for a whole budget.

    Attributes:
        totals: bucket id -> amount, for every known bucket (0 when unused).
        by_line: top-level line id -> its bucket map (lines without any share omitted).
    """

    totals: Mapping[str, Decimal]
    by_line: Mapping[str, Mapping[str, Decimal]] = field(default_factory=dict)


def distribution_report(
    categories: Sequence[Category],
    buckets: Sequence[ExpenseBucket],
    target_currency: str,
    rates: Mapping[str, Decimal],
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    diagnostics: Diagnostics | None = None,
) -> DistributionReport:
    """Distribute every top-level line of every category and sum per bucket."""
    amounts_of = line_amounts(target_currency, rates, charge_rates, use_alternate_rate, diagnostics=diagnostics)
    totals: dict[str, Decimal] = {b.id: ZERO for b in buckets}
    by_line: dict[str, dict[str, Decimal]] = {}
    for category in categories:
        if category.id == SOCIAL_CHARGES_CATEGORY_ID:
            continue
        for line in category.children:
            base, charges = amounts_of(line)
            shares = distribute(line, buckets, base, charges, amounts_of=amounts_of, diagnostics=diagnostics)
            if not shares:
                continue
            by_line[line.id] = shares
            for bucket_id, amount in shares.items():
                totals[bucket_id] = totals.get(bucket_id, ZERO) + amount
    return DistributionReport(totals=totals, by_line=by_line)


def bucket_social_charges(
    categories: Sequence[Category],
    bucket_id: str,
    charge_rates: ChargeRates | None,
    target_currency: str | None = None,
    rates: Mapping[str, Decimal] | None = None,
    *,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Social charges carried into ``bucket_id`` by lines that distribute their charges.

    Each line contributes ``charges * ratio`` where the ratio is ``amount / 100``
    for PERCENTAGE and ``amount / base`` for FIXED; lines with a non-positive base
    contribute 0.
    """
    index = index_charge_rates(charge_rates)
    total = ZERO

    def _visit(line: CostLine) -> None:
        nonlocal total
        for child in line.children:
            _visit(child)
        if line.children or not line.social_charge_type_id or not line.include_social_charges_in_distribution:
            return
        dist = next((d for d in line.distributions if d.bucket_id == bucket_id), None)
        if dist is None:
            return
        if target_currency is not None:
            base = valuate(line, target_currency, rates or {}, rollup=False, diagnostics=diagnostics)
        else:
            base = _own_value(line)
        if base <= ZERO:
            return
        charges = charge_amount(
            line,
            index,
            target_currency=target_currency,
            rates=rates,
            diagnostics=diagnostics,
        )
        share: Decimal = dist.amount  # type: ignore[assignment]
        ratio = share / base if dist.kind == DistributionKind.FIXED else share / HUNDRED
        total += charges * ratio

    for category in categories:
        if category.id == SOCIAL_CHARGES_CATEGORY_ID:
            continue
        for line in category.children:
            _visit(line)
    return total
