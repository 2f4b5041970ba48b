from decimal import Decimal

import pytest

from py_budgeteer.domain.errors import DomainError, InvalidTarget
from py_budgeteer.domain.rate_optimizer import calculate_optimal_rates, solve_margin_for_target


@pytest.mark.parametrize(
    "base,margin",
    [("6250", "25"), ("100", "0.5"), ("8850", "12.345"), ("0.01", "300")],
)
def test_margin_inverse(base, margin):
    b, m = Decimal(base), Decimal(margin)
    target = b * (1 + m / 100)
    assert abs(solve_margin_for_target(b, target) - m) < Decimal("1e-20")


def test_closed_form_value():
    assert solve_margin_for_target(1000, 1100) == Decimal("10")
    assert solve_margin_for_target("8850", "11062.5") == Decimal("25")


@pytest.mark.parametrize(
    "base,target",
    [(0, 100), (-5, 100), (100, 100), (100, 50)],
)
def test_invalid_target(base, target):
    with pytest.raises(InvalidTarget):
        solve_margin_for_target(base, target)


def test_invalid_target_is_a_domain_error():
    with pytest.raises(DomainError):
        calculate_optimal_rates(100, 90)


def test_optimal_rates_put_everything_on_margin():
    rates = calculate_optimal_rates(8850, "11062.5")
    assert rates.agency_percent == Decimal("0")
    assert rates.margin_percent == Decimal("25")


@pytest.mark.parametrize(
    "base,target",
    [(3, Decimal("1e20")), (7, Decimal("123456789012345678.91")), (Decimal("0.03"), 1)],
)
def test_optimal_rates_large_and_awkward_ratios(base, target):
    rates = calculate_optimal_rates(base, target)
    reached = Decimal(base) * (1 + rates.margin_percent / 100)
    assert abs(reached - target) <= target * Decimal("1e-20")
