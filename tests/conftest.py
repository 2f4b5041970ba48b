from __future__ import annotations

from collections.abc import Generator
from contextlib import suppress
from decimal import Decimal

import pytest

from py_budgeteer.domain.models import (
    Budget,
    Category,
    ChargeRate,
    CostLine,
    Distribution,
    ExpenseBucket,
)
from py_budgeteer.infrastructure.config.settings import get_settings

_ENV_KEYS = (
    "ENV",
    "LOG_LEVEL",
    "JSON_LOGS",
    "LOGGING_ENABLED",
    "LOG_FILE",
    "MONEY_SCALE",
    "RATE_SCALE",
    "ROUNDING",
    "DEFAULT_CURRENCY",
    "DEFAULT_AGENCY_PERCENT",
    "DEFAULT_MARGIN_PERCENT",
    "APPLY_SOCIAL_CHARGES_MARGINS",
    "OVERTIME_BASE_HOURS",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator:
    """Drop cached settings and any ambient configuration before every test."""
    with suppress(AttributeError):
        get_settings.cache_clear()  # type: ignore[attr-defined]
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
        monkeypatch.delenv(f"PYBUDGET__{key}", raising=False)
    yield
    with suppress(AttributeError):
        get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def rates() -> dict[str, Decimal]:
    return {"EUR": Decimal("1"), "USD": Decimal("1.1"), "GBP": Decimal("0.8")}


@pytest.fixture()
def charge_rates() -> tuple[ChargeRate, ...]:
    return (
        ChargeRate(id="techs", label="Technicians", rate=Decimal("0.65")),
        ChargeRate(id="artists", label="Artists", rate=Decimal("0.5"), agency_percent=0, margin_percent=5),
    )


@pytest.fixture()
def production() -> Category:
    """Production: DoP 5 x 800 with technician charges, Gaffer 5 x 450 without."""
    return Category(
        id="prod",
        name="Production",
        children=(
            CostLine(id="dop", name="DoP", quantity=5, count=1, unit_rate=800, social_charge_type_id="techs"),
            CostLine(id="gaffer", name="Gaffer", quantity=5, count=1, unit_rate=450),
        ),
    )


@pytest.fixture()
def post_production() -> Category:
    """Post-production: an editing sub-category holding two posts, one with sub-posts."""
    return Category(
        id="post",
        name="Post-production",
        children=(
            CostLine(
                id="editing",
                kind="subCategory",
                name="Editing",
                children=(
                    CostLine(id="editor", name="Editor", quantity=10, count=1, unit_rate=300),
                    CostLine(
                        id="grading",
                        name="Grading",
                        children=(
                            CostLine(id="colorist", kind="subPost", name="Colorist", quantity=2, count=1, unit_rate=500),
                            CostLine(id="suite", kind="subPost", name="Suite", quantity=2, count=1, unit_rate=250),
                        ),
                    ),
                ),
            ),
        ),
    )


@pytest.fixture()
def buckets() -> tuple[ExpenseBucket, ...]:
    return (ExpenseBucket(id="shoot", name="Shooting"), ExpenseBucket(id="edit", name="Editing"))


@pytest.fixture()
def budget(production: Category, charge_rates: tuple[ChargeRate, ...], buckets: tuple[ExpenseBucket, ...]) -> Budget:
    return Budget(categories=(production,), charge_rates=charge_rates, buckets=buckets)


@pytest.fixture()
def distributed_line() -> CostLine:
    return CostLine(
        id="camera",
        name="Camera",
        quantity=4,
        count=1,
        unit_rate=250,
        social_charge_type_id="techs",
        distributions=(
            Distribution(bucket_id="shoot", kind="percentage", amount=60),
            Distribution(bucket_id="edit", kind="percentage", amount=40),
        ),
    )


@pytest.fixture()
def snapshot_dict() -> dict:
    """Budget document in the camelCase layout exported by the editing UI."""
    return {
        "currency": "EUR",
        "rates": {"EUR": 1, "USD": "1.1"},
        "categories": [
            {
                "id": "prod",
                "name": "Production",
                "items": [
                    {
                        "id": "dop",
                        "type": "post",
                        "name": "DoP",
                        "quantity": 5,
                        "number": 1,
                        "rate": 800,
                        "unit": "Jour",
                        "socialCharges": "techs",
                        "distributions": [{"id": "shoot", "type": "percentage", "amount": 100}],
                    },
                    {"id": "gaffer", "type": "post", "name": "Gaffer", "quantity": 5, "number": 1, "rate": 450},
                ],
            },
            {
                "id": "fees",
                "name": "Fees",
                "items": [
                    {
                        "id": "insurance",
                        "type": "post",
                        "name": "Insurance",
                        "unit": "%",
                        "rate": 20,
                        "selectedCategories": ["prod"],
                    }
                ],
            },
        ],
        "chargeRates": [{"id": "techs", "label": "Technicians", "rate": 0.65}],
        "buckets": [{"id": "shoot", "name": "Shooting"}],
    }
