"""Social charges (payroll-tax-like add-ons) and margins applied over them.

Public API:
- index_charge_rates: normalize a charge-rate collection into a mapping by id.
- charge_amount: charges of one leaf line (override rate wins over the table).
- total_with_margins: ``base * (1 + agency% + margin%)``.
- charge_type_percents: agency/margin percentages for a charge type with defaults.
- line_margins: agency and margin amounts of a line over a base.
- line_total: line value optionally including its charges and margins over them.
- charges_by_type: charges accumulated per charge type across categories.
- sub_category_charges: charges of a sub-category's leaves kept out of distribution.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from .diagnostics import DiagnosticKind, Diagnostics
from .models import SOCIAL_CHARGES_CATEGORY_ID, Category, ChargeRate, CostLine
from .quantize import HUNDRED, ZERO, to_decimal
from .valuation import base_amount, valuate

__all__ = [
    "ChargeRates",
    "index_charge_rates",
    "charge_amount",
    "subtree_charges",
    "total_with_margins",
    "charge_type_percents",
    "line_margins",
    "line_total",
    "charges_by_type",
    "sub_category_charges",
]

ChargeRates = Sequence[ChargeRate] | Mapping[str, ChargeRate]


def index_charge_rates(charge_rates: ChargeRates | None) -> dict[str, ChargeRate]:
    if not charge_rates:
        return {}
    if isinstance(charge_rates, Mapping):
        return dict(charge_rates)
    return {r.id: r for r in charge_rates}


def _charge_base(
    line: CostLine,
    use_alternate_rate: bool,
    target_currency: str | None,
    rates: Mapping[str, Decimal] | None,
    diagnostics: Diagnostics | None,
) -> Decimal:
    if target_currency is not None:
        return valuate(line, target_currency, rates or {}, use_alternate_rate, rollup=False, diagnostics=diagnostics)
    if line.is_percentage:
        return line.calculated_amount if line.calculated_amount is not None else ZERO  # type: ignore[return-value]
    return base_amount(line, use_alternate_rate)


def charge_amount(
    line: CostLine,
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    target_currency: str | None = None,
    rates: Mapping[str, Decimal] | None = None,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Return the social-charge add-on of a leaf line.

    A line without a charge type carries no charges. A defined
    ``social_charge_rate_override`` is applied directly; otherwise the type is
    looked up in ``charge_rates`` and an unknown type yields 0.

    When ``target_currency`` is given, the base is the line's value converted
    into that currency (rate converted before multiplying); otherwise the base
    is the unconverted ``quantity * count * rate + overtime``.
    """
    type_id = line.social_charge_type_id
    if not type_id:
        return ZERO

    if line.social_charge_rate_override is not None:
        fraction: Decimal = line.social_charge_rate_override  # type: ignore[assignment]
    else:
        rate = index_charge_rates(charge_rates).get(type_id)
        if rate is None:
            if diagnostics is not None:
                diagnostics.add(
                    DiagnosticKind.UNKNOWN_CHARGE_TYPE,
                    type_id,
                    f"Charge type {type_id!r} of line {line.id!r} not found; charges counted as 0",
                )
            return ZERO
        fraction = rate.rate  # type: ignore[assignment]

    base = _charge_base(line, use_alternate_rate, target_currency, rates, diagnostics)
    return base * fraction


def subtree_charges(
    line: CostLine,
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    target_currency: str | None = None,
    rates: Mapping[str, Decimal] | None = None,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Charges of ``line`` or, when it has children, of all its leaves."""
    if not line.children:
        return charge_amount(
            line,
            charge_rates,
            use_alternate_rate,
            target_currency=target_currency,
            rates=rates,
            diagnostics=diagnostics,
        )
    total = ZERO
    for child in line.children:
        total += subtree_charges(
            child,
            charge_rates,
            use_alternate_rate,
            target_currency=target_currency,
            rates=rates,
            diagnostics=diagnostics,
        )
    return total


def total_with_margins(
    base: Decimal | int | str | float,
    agency_percent: Decimal | int | str | float | None,
    margin_percent: Decimal | int | str | float | None,
) -> Decimal:
    b = to_decimal(base)
    return b * (1 + to_decimal(agency_percent) / HUNDRED + to_decimal(margin_percent) / HUNDRED)


def charge_type_percents(
    charge_rate: ChargeRate | None,
    default_agency_percent: Decimal | int | str | float,
    default_margin_percent: Decimal | int | str | float,
) -> tuple[Decimal, Decimal]:
    """Return (agency%, margin%) for a charge type, falling back to the defaults."""
    agency = to_decimal(default_agency_percent)
    margin = to_decimal(default_margin_percent)
    if charge_rate is not None:
        if charge_rate.agency_percent is not None:
            agency = charge_rate.agency_percent  # type: ignore[assignment]
        if charge_rate.margin_percent is not None:
            margin = charge_rate.margin_percent  # type: ignore[assignment]
    return agency, margin


def line_margins(
    line: CostLine,
    base: Decimal | int | str | float,
    default_agency_percent: Decimal | int | str | float = ZERO,
    default_margin_percent: Decimal | int | str | float = ZERO,
) -> tuple[Decimal, Decimal]:
    """Agency and margin amounts of ``line`` over ``base``; zero base gives zeros."""
    b = to_decimal(base)
    if b == ZERO:
        return ZERO, ZERO
    agency, margin = line.effective_percents(default_agency_percent, default_margin_percent)
    return b * agency / HUNDRED, b * margin / HUNDRED


def line_total(
    line: CostLine,
    target_currency: str,
    rates: Mapping[str, Decimal],
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    include_social_charges: bool = False,
    apply_charge_margins: bool = False,
    default_agency_percent: Decimal | int | str | float = ZERO,
    default_margin_percent: Decimal | int | str | float = ZERO,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Value of a line in ``target_currency``, optionally with its social charges.

    With ``apply_charge_margins`` and positive charges, the line's own agency and
    margin percentages (or the defaults when unset) are applied over
    ``value + charges``. Lines with children are the sum of their children's totals.
    """
    if line.children:
        total = ZERO
        for child in line.children:
            total += line_total(
                child,
                target_currency,
                rates,
                charge_rates,
                use_alternate_rate,
                include_social_charges=include_social_charges,
                apply_charge_margins=apply_charge_margins,
                default_agency_percent=default_agency_percent,
                default_margin_percent=default_margin_percent,
                diagnostics=diagnostics,
            )
        return total

    value = valuate(line, target_currency, rates, use_alternate_rate, rollup=False, diagnostics=diagnostics)
    if not include_social_charges or not line.social_charge_type_id:
        return value

    charges = charge_amount(
        line,
        charge_rates,
        use_alternate_rate,
        target_currency=target_currency,
        rates=rates,
        diagnostics=diagnostics,
    )
    if apply_charge_margins and charges > ZERO:
        agency, margin = line.effective_percents(default_agency_percent, default_margin_percent)
        return total_with_margins(value + charges, agency, margin)
    return value + charges


def _leaves(lines: Iterable[CostLine]) -> Iterable[CostLine]:
    for line in lines:
        if line.children:
            yield from _leaves(line.children)
        else:
            yield line


def charges_by_type(
    categories: Iterable[Category],
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    target_currency: str | None = None,
    rates: Mapping[str, Decimal] | None = None,
    exclude_distributed: bool = False,
    diagnostics: Diagnostics | None = None,
) -> dict[str, Decimal]:
    """Accumulate leaf charges per charge type, skipping the social-charges category.

    ``exclude_distributed`` leaves out lines whose charges travel with their
    distribution (detailed display of distributed charges).
    """
    index = index_charge_rates(charge_rates)
    result: dict[str, Decimal] = {}
    for category in categories:
        if category.id == SOCIAL_CHARGES_CATEGORY_ID:
            continue
        for leaf in _leaves(category.children):
            type_id = leaf.social_charge_type_id
            if not type_id:
                continue
            if exclude_distributed and leaf.include_social_charges_in_distribution:
                continue
            amount = charge_amount(
                leaf,
                index,
                use_alternate_rate,
                target_currency=target_currency,
                rates=rates,
                diagnostics=diagnostics,
            )
            if type_id in index or leaf.social_charge_rate_override is not None:
                result[type_id] = result.get(type_id, ZERO) + amount
    return result


def sub_category_charges(
    sub_category: CostLine,
    charge_rates: ChargeRates | None,
    use_alternate_rate: bool = False,
    *,
    target_currency: str | None = None,
    rates: Mapping[str, Decimal] | None = None,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Charges of the leaves under ``sub_category`` that are not carried into distribution."""
    index = index_charge_rates(charge_rates)
    total = ZERO
    for leaf in _leaves(sub_category.children):
        if leaf.include_social_charges_in_distribution:
            continue
        total += charge_amount(
            leaf,
            index,
            use_alternate_rate,
            target_currency=target_currency,
            rates=rates,
            diagnostics=diagnostics,
        )
    return total
