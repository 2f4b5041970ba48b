"""Bottom-up budget totals.

Public API:
- CategoryTotals: per-category base cost and social charges.
- BudgetTotals: base cost, charges by type, weighted agency/margin, grand total.
- TreeAggregator: walks categories and produces BudgetTotals.
- category_total / sub_category_total: value of one container.

Notes:
- The social-charges pseudo-category is display-only and never accumulated.
- Agency/margin over base cost use the value-weighted average of line
  percentages (unset line percentages inherit the defaults); when base cost is
  not positive the defaults are used.
- Agency/margin over charges use each charge type's own percentages when
  present, else the defaults.
- Amounts are returned unquantized; presentation layers round for display.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .cache import FingerprintCache
from .diagnostics import Diagnostics
from .models import SOCIAL_CHARGES_CATEGORY_ID, Category, CostLine
from .percentage_base import PercentageBaseResult, resolve_percentage_lines
from .quantize import HUNDRED, ZERO, to_decimal
from .social_charges import (
    ChargeRates,
    charge_amount,
    charge_type_percents,
    index_charge_rates,
)
from .valuation import valuate

__all__ = [
    "CategoryTotals",
    "BudgetTotals",
    "TreeAggregator",
    "category_total",
    "sub_category_total",
]


@dataclass(slots=True, frozen=True)
class CategoryTotals:
    """Totals of one category.

    Attributes:
        category_id: Category identifier.
        name: Category display name.
        base_cost: Sum of line values (no charges, no margins).
        social_charges: Sum of the charges of its lines.
        total_cost: base_cost + social_charges.
    """

    category_id: str
    name: str
    base_cost: Decimal
    social_charges: Decimal
    total_cost: Decimal


@dataclass(slots=True, frozen=True)
class BudgetTotals:
    """Budget-wide totals in the target currency.

    Attributes:
        currency: Target currency code.
        base_cost: Sum of every leaf value outside the social-charges category.
        charges_by_type: Charges accumulated per charge type id.
        total_social_charges: Sum of charges_by_type.
        total_cost: base_cost + total_social_charges.
        agency_percent: Weighted average agency percentage over base cost.
        margin_percent: Weighted average margin percentage over base cost.
        agency: Agency amount over base cost and charges.
        margin: Margin amount over base cost and charges.
        grand_total: total_cost + agency + margin.
        categories: Per-category totals in tree order.
    """

    currency: str
    base_cost: Decimal
    charges_by_type: Mapping[str, Decimal]
    total_social_charges: Decimal
    total_cost: Decimal
    agency_percent: Decimal
    margin_percent: Decimal
    agency: Decimal
    margin: Decimal
    grand_total: Decimal
    categories: tuple[CategoryTotals, ...] = field(default=())


@dataclass(slots=True)
class _Accumulator:
    base_cost: Decimal = ZERO
    weighted_agency: Decimal = ZERO
    weighted_margin: Decimal = ZERO
    charges_by_type: dict[str, Decimal] = field(default_factory=dict)


class TreeAggregator:
    """Aggregate a budget tree into BudgetTotals.

    Usage: TreeAggregator().aggregate(categories, "EUR", rates, charge_rates, 10, 15)
    """

    def aggregate(
        self,
        categories: Sequence[Category],
        target_currency: str,
        rates: Mapping[str, Decimal],
        charge_rates: ChargeRates | None,
        default_agency_percent: Decimal | int | str | float,
        default_margin_percent: Decimal | int | str | float,
        use_alternate_rate: bool = False,
        *,
        resolve_percentages: bool = True,
        cache: FingerprintCache[PercentageBaseResult] | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> BudgetTotals:
        """Walk every category except the social-charges one and total it.

        Args:
            categories: Tree snapshot.
            target_currency: Display currency all values are expressed in.
            rates: Exchange-rate table (rate relative to the common base).
            charge_rates: Social-charge classes.
            default_agency_percent: Budget-wide agency percentage.
            default_margin_percent: Budget-wide margin percentage.
            use_alternate_rate: Value lines at their alternate (actual-cost) rate.
            resolve_percentages: Resolve percentage-line bases first; disable when
                the snapshot already carries calculated amounts.
            cache: Optional fingerprint cache for percentage bases; may be
                reused across snapshots and rate tables.
            diagnostics: Optional collector of non-fatal conditions.

        Raises:
            TypeError: when ``categories`` is None.
        """
        if categories is None:
            raise TypeError("categories must not be None")
        default_agency = to_decimal(default_agency_percent)
        default_margin = to_decimal(default_margin_percent)
        rate_index = index_charge_rates(charge_rates)
        target = target_currency.strip().upper()

        if resolve_percentages:
            categories = resolve_percentage_lines(
                categories,
                target,
                rates,
                rate_index,
                use_alternate_rate,
                cache=cache,
                diagnostics=diagnostics,
            )

        acc = _Accumulator()
        per_category: list[CategoryTotals] = []
        for category in categories:
            if category.id == SOCIAL_CHARGES_CATEGORY_ID:
                continue
            before_base = acc.base_cost
            before_charges = sum(acc.charges_by_type.values(), ZERO)
            for line in category.children:
                self._process(line, acc, target, rates, rate_index, default_agency, default_margin, use_alternate_rate, diagnostics)
            cat_base = acc.base_cost - before_base
            cat_charges = sum(acc.charges_by_type.values(), ZERO) - before_charges
            per_category.append(
                CategoryTotals(
                    category_id=category.id,
                    name=category.name,
                    base_cost=cat_base,
                    social_charges=cat_charges,
                    total_cost=cat_base + cat_charges,
                )
            )

        if acc.base_cost > ZERO:
            agency_percent = acc.weighted_agency / acc.base_cost
            margin_percent = acc.weighted_margin / acc.base_cost
        else:
            agency_percent = default_agency
            margin_percent = default_margin

        total_charges = sum(acc.charges_by_type.values(), ZERO)
        agency = acc.base_cost * agency_percent / HUNDRED
        margin = acc.base_cost * margin_percent / HUNDRED
        for type_id, amount in acc.charges_by_type.items():
            type_agency, type_margin = charge_type_percents(rate_index.get(type_id), default_agency, default_margin)
            agency += amount * type_agency / HUNDRED
            margin += amount * type_margin / HUNDRED

        total_cost = acc.base_cost + total_charges
        return BudgetTotals(
            currency=target,
            base_cost=acc.base_cost,
            charges_by_type=dict(acc.charges_by_type),
            total_social_charges=total_charges,
            total_cost=total_cost,
            agency_percent=agency_percent,
            margin_percent=margin_percent,
            agency=agency,
            margin=margin,
            grand_total=total_cost + agency + margin,
            categories=tuple(per_category),
        )

    def _process(
        self,
        line: CostLine,
        acc: _Accumulator,
        target: str,
        rates: Mapping[str, Decimal],
        rate_index: dict,
        default_agency: Decimal,
        default_margin: Decimal,
        use_alternate_rate: bool,
        diagnostics: Diagnostics | None,
    ) -> None:
        if line.children:
            for child in line.children:
                self._process(child, acc, target, rates, rate_index, default_agency, default_margin, use_alternate_rate, diagnostics)
            return

        value = valuate(line, target, rates, use_alternate_rate, rollup=False, diagnostics=diagnostics)
        acc.base_cost += value
        agency_pct, margin_pct = line.effective_percents(default_agency, default_margin)
        acc.weighted_agency += value * agency_pct
        acc.weighted_margin += value * margin_pct

        type_id = line.social_charge_type_id
        if type_id and (type_id in rate_index or line.social_charge_rate_override is not None):
            charges = charge_amount(
                line,
                rate_index,
                use_alternate_rate,
                target_currency=target,
                rates=rates,
                diagnostics=diagnostics,
            )
            acc.charges_by_type[type_id] = acc.charges_by_type.get(type_id, ZERO) + charges
        elif type_id:
            # records the UNKNOWN_CHARGE_TYPE diagnostic
            charge_amount(line, rate_index, use_alternate_rate, diagnostics=diagnostics)


def category_total(
    category: Category | Iterable[CostLine],
    target_currency: str,
    rates: Mapping[str, Decimal],
    use_alternate_rate: bool = False,
    *,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    """Sum of line values of a category (or of a list of lines), without charges."""
    lines = category.children if isinstance(category, Category) else category
    total = ZERO
    for line in lines:
        total += valuate(line, target_currency, rates, use_alternate_rate, diagnostics=diagnostics)
    return total


def sub_category_total(
    sub_category: CostLine,
    target_currency: str,
    rates: Mapping[str, Decimal],
    use_alternate_rate: bool = False,
    *,
    diagnostics: Diagnostics | None = None,
) -> Decimal:
    return category_total(sub_category.children, target_currency, rates, use_alternate_rate, diagnostics=diagnostics)
