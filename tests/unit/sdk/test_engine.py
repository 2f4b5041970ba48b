from __future__ import annotations

from decimal import Decimal

import pytest

from py_budgeteer.domain.diagnostics import DiagnosticKind
from py_budgeteer.domain.errors import InvalidTarget
from py_budgeteer.domain.models import Budget, Category, CostLine, Distribution
from py_budgeteer.infrastructure.config.settings import get_settings
from py_budgeteer.sdk.engine import Engine
from py_budgeteer.sdk.snapshot import load_budget


@pytest.fixture()
def engine() -> Engine:
    return Engine(get_settings(ignore_env_file=True))


def test_totals_with_percentage_line(engine, snapshot_dict):
    budget = load_budget(snapshot_dict)
    result = engine.totals(budget, "EUR", snapshot_dict["rates"])
    t = result.totals
    # production 6250 + insurance 20% of it
    assert t.base_cost == Decimal("7500")
    assert t.total_social_charges == Decimal("2600")
    assert t.agency == Decimal("1010")
    assert t.margin == Decimal("1515")
    assert t.grand_total == Decimal("12625")
    assert result.line_totals == {"dop": Decimal("6600"), "gaffer": Decimal("2250"), "insurance": Decimal("1250")}
    assert result.diagnostics == ()


def test_totals_defaults_to_configured_currency(monkeypatch, budget):
    monkeypatch.setenv("DEFAULT_CURRENCY", "usd")
    result = Engine(get_settings(ignore_env_file=True)).totals(budget, rates={"EUR": 1, "USD": "1.1"})
    assert result.totals.currency == "USD"
    assert result.totals.base_cost == Decimal("6250")


def test_margins_on_charges_in_line_totals(monkeypatch, budget):
    monkeypatch.setenv("APPLY_SOCIAL_CHARGES_MARGINS", "true")
    result = Engine(get_settings(ignore_env_file=True)).totals(budget, "EUR")
    assert result.line_totals["dop"] == Decimal("8250")


def test_totals_report_diagnostics(engine, charge_rates):
    budget = Budget(
        categories=(
            Category(
                id="c",
                children=(
                    CostLine(id="yen", quantity=1, count=1, unit_rate=100, currency="JPY"),
                    CostLine(id="p", unit="percentage", unit_rate=10, selected_references=("deleted",)),
                ),
            ),
        ),
        charge_rates=charge_rates,
    )
    result = engine.totals(budget, "EUR", {"EUR": 1})
    kinds = {d.kind for d in result.diagnostics}
    assert kinds == {DiagnosticKind.UNKNOWN_CURRENCY, DiagnosticKind.UNRESOLVED_REFERENCE}
    assert result.totals.base_cost == Decimal("100")


def test_percentage_base(engine, production, post_production, charge_rates):
    budget = Budget(categories=(production, post_production), charge_rates=charge_rates)
    result = engine.percentage_base(budget, ["prod", "dop", "grading"], "EUR")
    assert result.total == Decimal("7750")
    assert [e.id for e in result.breakdown] == ["prod", "grading"]
    with_charges = engine.percentage_base(budget, ["prod"], "EUR", include_social_charges=True)
    assert with_charges.total == Decimal("8850")


def test_distribution(engine, budget):
    dop = budget.categories[0].children[0]
    lines = (
        CostLine(
            id="dop",
            quantity=dop.quantity,
            count=dop.count,
            unit_rate=dop.unit_rate,
            social_charge_type_id="techs",
            include_social_charges_in_distribution=True,
            distributions=(
                Distribution("shoot", "percentage", 75),
                Distribution("edit", "fixed", 1000),
                Distribution("gone", "fixed", 1),
            ),
        ),
    )
    budget = Budget(categories=(Category(id="prod", children=lines),), charge_rates=budget.charge_rates, buckets=budget.buckets)
    result = engine.distribution(budget, "EUR")
    # (4000 + 2600) * 75%; 1000 + 2600 * 1000/4000
    assert result.report.totals == {"shoot": Decimal("4950"), "edit": Decimal("1650")}
    assert [d.subject for d in result.diagnostics] == ["gone"]


def test_solve_margin(engine):
    result = engine.solve_margin(8850, "11062.5")
    assert result.agency_percent == Decimal("0")
    assert result.margin_percent == Decimal("25")
    with pytest.raises(InvalidTarget):
        engine.solve_margin(100, 100)


def test_overtime_uses_configured_base_hours(monkeypatch):
    monkeypatch.setenv("OVERTIME_BASE_HOURS", "10")
    result = Engine(get_settings(ignore_env_file=True)).overtime(500, normal_hours=1, x1_5_hours=2)
    assert result.rates.normal == Decimal("50")
    assert result.amount == Decimal("200")
