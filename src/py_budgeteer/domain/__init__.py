from .aggregation import BudgetTotals, CategoryTotals, TreeAggregator, category_total, sub_category_total
from .cache import FingerprintCache
from .currencies import RateTable, build_rate_table, convert
from .diagnostics import Diagnostic, DiagnosticKind, Diagnostics
from .distribution import DistributionReport, bucket_social_charges, distribute, distribution_report
from .errors import DomainError, InvalidTarget, ValidationError
from .models import (
    PERCENTAGE_UNIT,
    SOCIAL_CHARGES_CATEGORY_ID,
    Budget,
    Category,
    ChargeRate,
    CostLine,
    Distribution,
    DistributionKind,
    ExpenseBucket,
    LineKind,
)
from .overtime import OvertimeRates, overtime_rates, overtime_total
from .percentage_base import (
    BaseEntry,
    PercentageBaseResult,
    base_cache_key,
    fingerprint,
    pricing_signature,
    resolve_base,
    resolve_percentage_lines,
)
from .rate_optimizer import OptimalRates, calculate_optimal_rates, solve_margin_for_target
from .social_charges import charge_amount, charges_by_type, line_total, total_with_margins
from .valuation import valuate
from .variance import Variance, calculate_variance

__all__ = [
    "DomainError",
    "ValidationError",
    "InvalidTarget",
    "Diagnostic",
    "DiagnosticKind",
    "Diagnostics",
    "PERCENTAGE_UNIT",
    "SOCIAL_CHARGES_CATEGORY_ID",
    "LineKind",
    "DistributionKind",
    "Distribution",
    "CostLine",
    "Category",
    "ChargeRate",
    "ExpenseBucket",
    "Budget",
    "RateTable",
    "build_rate_table",
    "convert",
    "valuate",
    "charge_amount",
    "charges_by_type",
    "line_total",
    "total_with_margins",
    "BaseEntry",
    "PercentageBaseResult",
    "resolve_base",
    "fingerprint",
    "base_cache_key",
    "pricing_signature",
    "resolve_percentage_lines",
    "FingerprintCache",
    "CategoryTotals",
    "BudgetTotals",
    "TreeAggregator",
    "category_total",
    "sub_category_total",
    "DistributionReport",
    "distribute",
    "distribution_report",
    "bucket_social_charges",
    "OptimalRates",
    "solve_margin_for_target",
    "calculate_optimal_rates",
    "OvertimeRates",
    "overtime_rates",
    "overtime_total",
    "Variance",
    "calculate_variance",
]
