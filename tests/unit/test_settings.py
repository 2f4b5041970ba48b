from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from py_budgeteer.infrastructure.config.settings import BaseAppSettings, ProdSettings, get_settings


def test_settings_test_profile_defaults() -> None:
    s = get_settings(ignore_env_file=True)
    assert s.env == "test"
    assert s.log_level.upper() == "DEBUG"
    assert s.json_logs is False
    assert s.logging_enabled is True
    assert s.money_scale == 2
    assert s.rate_scale == 10
    assert s.rounding == "ROUND_HALF_UP"
    assert s.default_currency == "EUR"
    assert s.default_agency_percent == Decimal("10")
    assert s.default_margin_percent == Decimal("15")
    assert s.apply_social_charges_margins is False
    assert s.overtime_base_hours == Decimal("8")


def test_prod_profile_uses_json_logs() -> None:
    s = get_settings(forced_env="production", ignore_env_file=True)
    assert s.env == "production"
    assert s.json_logs is True
    assert s.log_level.upper() == "INFO"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("DEFAULT_CURRENCY", "usd")
    monkeypatch.setenv("DEFAULT_MARGIN_PERCENT", "12.5")
    s: BaseAppSettings = get_settings(ignore_env_file=True)
    assert s.env == "production"
    assert s.log_level.upper() == "WARNING"
    assert s.default_currency == "USD"
    assert s.default_margin_percent == Decimal("12.5")


def test_forced_env_switch(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENV", "production")
    s = get_settings(forced_env="test", ignore_env_file=True)
    assert s.env == "test"


def test_namespaced_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYBUDGET__LOG_LEVEL", "warning")
    monkeypatch.setenv("PYBUDGET__APPLY_SOCIAL_CHARGES_MARGINS", "true")
    monkeypatch.setenv("PYBUDGET__OVERTIME_BASE_HOURS", "10")
    s = get_settings(ignore_env_file=True)
    assert s.log_level.upper() == "WARNING"
    assert s.apply_social_charges_margins is True
    assert s.overtime_base_hours == Decimal("10")


def test_logging_enabled_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOGGING_ENABLED", "false")
    s = get_settings(ignore_env_file=True)
    assert s.logging_enabled is False


@pytest.mark.parametrize(
    "key,value",
    [("ROUNDING", "ROUND_SIDEWAYS"), ("MONEY_SCALE", "-1"), ("RATE_SCALE", "40"), ("DEFAULT_CURRENCY", "E")],
)
def test_invalid_values_rejected(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)
    with pytest.raises(ValidationError):
        ProdSettings()


def test_get_settings_is_cached() -> None:
    assert get_settings(ignore_env_file=True) is get_settings(ignore_env_file=True)
