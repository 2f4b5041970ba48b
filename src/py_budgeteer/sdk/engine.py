"""Engine facade: one object wiring settings, logging and the domain functions.

Every domain function is pure and takes its parameters explicitly; the Engine
reads budget-wide defaults (display currency, agency/margin percentages,
margins on social charges, overtime base hours) from settings once and threads
them through. Each call collects diagnostics in a fresh collector, logs them
as ``valuation.diagnostic`` warnings and returns them with the result.

Example:
    engine = Engine()
    result = engine.totals(budget, currency="EUR", rates={"EUR": 1, "USD": "1.1"})
    result.totals.grand_total
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from py_budgeteer.domain.aggregation import BudgetTotals, TreeAggregator
from py_budgeteer.domain.cache import FingerprintCache
from py_budgeteer.domain.currencies import RateTable, build_rate_table, normalize_code
from py_budgeteer.domain.diagnostics import Diagnostic, Diagnostics
from py_budgeteer.domain.distribution import DistributionReport, distribution_report
from py_budgeteer.domain.models import SOCIAL_CHARGES_CATEGORY_ID, Budget
from py_budgeteer.domain.overtime import OvertimeRates, overtime_rates, overtime_total
from py_budgeteer.domain.percentage_base import BaseEntry, PercentageBaseResult, resolve_base, resolve_percentage_lines
from py_budgeteer.domain.quantize import to_decimal
from py_budgeteer.domain.rate_optimizer import calculate_optimal_rates
from py_budgeteer.domain.social_charges import line_total
from py_budgeteer.infrastructure.config.settings import BaseAppSettings, get_settings
from py_budgeteer.infrastructure.logging.config import get_logger

__all__ = [
    "Engine",
    "TotalsResult",
    "BaseResult",
    "DistributionResult",
    "MarginResult",
    "OvertimeResult",
]


@dataclass(slots=True, frozen=True)
class TotalsResult:
    """Budget totals plus per-line totals of top-level lines.

    ``line_totals`` include social charges, and margins over them when
    APPLY_SOCIAL_CHARGES_MARGINS is enabled.
    """

    totals: BudgetTotals
    line_totals: Mapping[str, Decimal] = field(default_factory=dict)
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass(slots=True, frozen=True)
class BaseResult:
    selection: tuple[str, ...]
    currency: str
    total: Decimal
    breakdown: tuple[BaseEntry, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass(slots=True, frozen=True)
class DistributionResult:
    currency: str
    report: DistributionReport
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass(slots=True, frozen=True)
class MarginResult:
    base_cost: Decimal
    target_total: Decimal
    agency_percent: Decimal
    margin_percent: Decimal


@dataclass(slots=True, frozen=True)
class OvertimeResult:
    rates: OvertimeRates
    amount: Decimal


class Engine:
    """Budget valuation entry point for SDK consumers and the CLI."""

    def __init__(self, settings: BaseAppSettings | None = None) -> None:
        self.settings = settings or get_settings()
        self._log = get_logger("py_budgeteer.engine")

    def _currency(self, currency: str | None) -> str:
        return normalize_code(currency) or self.settings.default_currency

    def _report(self, event: str, diagnostics: Diagnostics, **fields: object) -> tuple[Diagnostic, ...]:
        for d in diagnostics:
            self._log.warning("valuation.diagnostic", kind=d.kind.value, subject=d.subject, detail=d.message)
        self._log.debug(event, diagnostics=len(diagnostics), **fields)
        return tuple(diagnostics)

    def totals(
        self,
        budget: Budget,
        currency: str | None = None,
        rates: Mapping[str, Decimal | int | str | float] | None = None,
        *,
        use_alternate_rate: bool = False,
    ) -> TotalsResult:
        """Resolve percentage lines, then aggregate the whole budget."""
        target = self._currency(currency)
        table: RateTable = build_rate_table(rates or {})
        diagnostics = Diagnostics()
        cache: FingerprintCache[PercentageBaseResult] = FingerprintCache()
        categories = resolve_percentage_lines(
            budget.categories,
            target,
            table,
            budget.charge_rates,
            use_alternate_rate,
            cache=cache,
            diagnostics=diagnostics,
        )
        totals = TreeAggregator().aggregate(
            categories,
            target,
            table,
            budget.charge_rates,
            self.settings.default_agency_percent,
            self.settings.default_margin_percent,
            use_alternate_rate,
            resolve_percentages=False,
            diagnostics=diagnostics,
        )
        line_totals: dict[str, Decimal] = {}
        for category in categories:
            if category.id == SOCIAL_CHARGES_CATEGORY_ID:
                continue
            for line in category.children:
                line_totals[line.id] = line_total(
                    line,
                    target,
                    table,
                    budget.charge_rates,
                    use_alternate_rate,
                    include_social_charges=True,
                    apply_charge_margins=self.settings.apply_social_charges_margins,
                    default_agency_percent=self.settings.default_agency_percent,
                    default_margin_percent=self.settings.default_margin_percent,
                    diagnostics=diagnostics,
                )
        reported = self._report(
            "valuation.totals",
            diagnostics,
            currency=target,
            grand_total=str(totals.grand_total),
            base_cache_hits=cache.hits,
            base_cache_misses=cache.misses,
        )
        return TotalsResult(totals=totals, line_totals=line_totals, diagnostics=reported)

    def percentage_base(
        self,
        budget: Budget,
        selected_ids: Sequence[str],
        currency: str | None = None,
        rates: Mapping[str, Decimal | int | str | float] | None = None,
        *,
        include_social_charges: bool = False,
        use_alternate_rate: bool = False,
    ) -> BaseResult:
        """Deduplicated value of a selection, with its audit breakdown.

        Percentage lines of the budget are resolved first so that a selection
        containing them sees their computed value.
        """
        target = self._currency(currency)
        table = build_rate_table(rates or {})
        diagnostics = Diagnostics()
        categories = resolve_percentage_lines(
            budget.categories, target, table, budget.charge_rates, use_alternate_rate, diagnostics=diagnostics
        )
        result = resolve_base(
            list(selected_ids),
            categories,
            target,
            table,
            include_social_charges,
            charge_rates=budget.charge_rates,
            use_alternate_rate=use_alternate_rate,
            diagnostics=diagnostics,
        )
        reported = self._report("valuation.percentage_base", diagnostics, currency=target, total=str(result.total))
        return BaseResult(
            selection=tuple(selected_ids),
            currency=target,
            total=result.total,
            breakdown=result.breakdown,
            diagnostics=reported,
        )

    def distribution(
        self,
        budget: Budget,
        currency: str | None = None,
        rates: Mapping[str, Decimal | int | str | float] | None = None,
        *,
        use_alternate_rate: bool = False,
    ) -> DistributionResult:
        """Bucket totals of the budget; percentage lines are resolved first."""
        target = self._currency(currency)
        table = build_rate_table(rates or {})
        diagnostics = Diagnostics()
        categories = resolve_percentage_lines(
            budget.categories, target, table, budget.charge_rates, use_alternate_rate, diagnostics=diagnostics
        )
        report = distribution_report(
            categories,
            budget.buckets,
            target,
            table,
            budget.charge_rates,
            use_alternate_rate,
            diagnostics=diagnostics,
        )
        reported = self._report("valuation.distribution", diagnostics, currency=target, buckets=len(report.totals))
        return DistributionResult(currency=target, report=report, diagnostics=reported)

    def solve_margin(
        self,
        base_cost: Decimal | int | str | float,
        target_total: Decimal | int | str | float,
    ) -> MarginResult:
        """Agency 0 and the margin reaching ``target_total``.

        Raises:
            InvalidTarget: when the base is not positive or the target does not exceed it.
        """
        optimal = calculate_optimal_rates(base_cost, target_total)
        self._log.debug("valuation.solve_margin", margin_percent=str(optimal.margin_percent))
        return MarginResult(
            base_cost=to_decimal(base_cost),
            target_total=to_decimal(target_total),
            agency_percent=optimal.agency_percent,
            margin_percent=optimal.margin_percent,
        )

    def overtime(
        self,
        daily_rate: Decimal | int | str | float,
        normal_hours: Decimal | int | str | float = 0,
        x1_5_hours: Decimal | int | str | float = 0,
        x2_hours: Decimal | int | str | float = 0,
    ) -> OvertimeResult:
        """Overtime amount using OVERTIME_BASE_HOURS for the hourly rate."""
        rates = overtime_rates(daily_rate, self.settings.overtime_base_hours)
        return OvertimeResult(rates=rates, amount=overtime_total(normal_hours, x1_5_hours, x2_hours, rates))
