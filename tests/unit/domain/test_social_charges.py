from decimal import Decimal

from py_budgeteer.domain.diagnostics import DiagnosticKind, Diagnostics
from py_budgeteer.domain.models import SOCIAL_CHARGES_CATEGORY_ID, Category, CostLine
from py_budgeteer.domain.social_charges import (
    charge_amount,
    charge_type_percents,
    charges_by_type,
    index_charge_rates,
    line_margins,
    line_total,
    sub_category_charges,
    subtree_charges,
    total_with_margins,
)


def test_charge_amount_from_table(production, charge_rates):
    dop, gaffer = production.children
    assert charge_amount(dop, charge_rates) == Decimal("2600")
    assert charge_amount(gaffer, charge_rates) == Decimal("0")


def test_override_wins_over_table_and_unknown_type(charge_rates):
    overridden = CostLine(id="x", quantity=1, count=1, unit_rate=1000, social_charge_type_id="techs", social_charge_rate_override="0.5")
    assert charge_amount(overridden, charge_rates) == Decimal("500")
    custom = CostLine(id="y", quantity=1, count=1, unit_rate=1000, social_charge_type_id="custom", social_charge_rate_override="0.2")
    assert charge_amount(custom, charge_rates) == Decimal("200")


def test_unknown_type_is_zero_with_diagnostic(charge_rates):
    diags = Diagnostics()
    line = CostLine(id="x", quantity=1, count=1, unit_rate=1000, social_charge_type_id="ghost")
    assert charge_amount(line, charge_rates, diagnostics=diags) == Decimal("0")
    [d] = diags.of_kind(DiagnosticKind.UNKNOWN_CHARGE_TYPE)
    assert d.subject == "ghost"


def test_charge_uses_alternate_rate(charge_rates):
    line = CostLine(id="x", quantity=1, count=1, unit_rate=1000, alternate_rate=800, social_charge_type_id="techs")
    assert charge_amount(line, charge_rates, use_alternate_rate=True) == Decimal("520")


def test_charge_converted_to_target_currency(charge_rates, rates):
    line = CostLine(id="x", quantity=1, count=1, unit_rate=110, currency="USD", social_charge_type_id="techs")
    assert charge_amount(line, charge_rates, target_currency="EUR", rates=rates) == Decimal("65")
    # without a target the base stays in the line's own currency
    assert charge_amount(line, charge_rates) == Decimal("71.5")


def test_percentage_line_charges_use_calculated_amount(charge_rates):
    line = CostLine(id="p", unit="percentage", unit_rate=20, calculated_amount=1000, social_charge_type_id="techs")
    assert charge_amount(line, charge_rates) == Decimal("650")


def test_subtree_charges_sum_leaves(charge_rates):
    parent = CostLine(
        id="crew",
        children=(
            CostLine(id="a", quantity=1, count=1, unit_rate=100, social_charge_type_id="techs"),
            CostLine(id="b", quantity=1, count=1, unit_rate=100, social_charge_type_id="artists"),
        ),
    )
    assert subtree_charges(parent, charge_rates) == Decimal("115")


def test_total_with_margins():
    assert total_with_margins(1000, 10, 15) == Decimal("1250")
    assert total_with_margins(1000, None, None) == Decimal("1000")


def test_charge_type_percents_fallback(charge_rates):
    index = index_charge_rates(charge_rates)
    assert charge_type_percents(index["artists"], 10, 15) == (Decimal("0"), Decimal("5"))
    assert charge_type_percents(index["techs"], 10, 15) == (Decimal("10"), Decimal("15"))
    assert charge_type_percents(None, 10, 15) == (Decimal("10"), Decimal("15"))


def test_line_margins_inherit_unset_percent():
    line = CostLine(id="x", margin_percent=20)
    assert line_margins(line, 1000, 10, 15) == (Decimal("100"), Decimal("200"))
    assert line_margins(line, 0, 10, 15) == (Decimal("0"), Decimal("0"))


def test_line_total_with_charges_and_margins(production, charge_rates, rates):
    dop = production.children[0]
    assert line_total(dop, "EUR", rates, charge_rates) == Decimal("4000")
    assert line_total(dop, "EUR", rates, charge_rates, include_social_charges=True) == Decimal("6600")
    with_margins = line_total(
        dop,
        "EUR",
        rates,
        charge_rates,
        include_social_charges=True,
        apply_charge_margins=True,
        default_agency_percent=10,
        default_margin_percent=15,
    )
    assert with_margins == Decimal("8250")


def test_charges_by_type_skips_social_charges_category(production, charge_rates):
    display_only = Category(
        id=SOCIAL_CHARGES_CATEGORY_ID,
        children=(CostLine(id="sc", quantity=1, count=1, unit_rate=9999, social_charge_type_id="techs"),),
    )
    assert charges_by_type([production, display_only], charge_rates) == {"techs": Decimal("2600")}


def test_charges_by_type_excluding_distributed(charge_rates):
    cat = Category(
        id="c",
        children=(
            CostLine(id="a", quantity=1, count=1, unit_rate=100, social_charge_type_id="techs"),
            CostLine(
                id="b",
                quantity=1,
                count=1,
                unit_rate=100,
                social_charge_type_id="techs",
                include_social_charges_in_distribution=True,
            ),
        ),
    )
    assert charges_by_type([cat], charge_rates) == {"techs": Decimal("130")}
    assert charges_by_type([cat], charge_rates, exclude_distributed=True) == {"techs": Decimal("65")}


def test_sub_category_charges_leave_out_distributed_lines(charge_rates):
    sub = CostLine(
        id="s",
        kind="subCategory",
        children=(
            CostLine(id="a", quantity=2, count=1, unit_rate=100, social_charge_type_id="techs"),
            CostLine(
                id="b",
                quantity=1,
                count=1,
                unit_rate=100,
                social_charge_type_id="techs",
                include_social_charges_in_distribution=True,
            ),
        ),
    )
    assert sub_category_charges(sub, charge_rates) == Decimal("130")
