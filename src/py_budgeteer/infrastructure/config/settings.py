from __future__ import annotations

import decimal as dec
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["test", "production"]

_ROUNDING_MODES = {
    "ROUND_HALF_UP",
    "ROUND_HALF_EVEN",
    "ROUND_HALF_DOWN",
    "ROUND_UP",
    "ROUND_DOWN",
    "ROUND_CEILING",
    "ROUND_FLOOR",
    "ROUND_05UP",
}


def _prefixed(name: str) -> AliasChoices:
    return AliasChoices(f"PYBUDGET__{name}", name)


class BaseAppSettings(BaseSettings):
    """Application settings shared by all profiles.

    Loaded through pydantic-settings from ENV/.env. Every variable may be
    given bare (``LOG_LEVEL``) or prefixed (``PYBUDGET__LOG_LEVEL``); the
    prefixed form wins.

    Groups:
    - logging: level, JSON rendering, optional rotating file
    - quantization: money/rate scale and rounding mode
    - budget defaults: display currency, agency/margin percentages,
      margins on social charges, overtime base hours
    """

    model_config = SettingsConfigDict(env_file=(".env",), env_file_encoding="utf-8", extra="ignore")

    env: EnvName = Field(default="test")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO", validation_alias=_prefixed("LOG_LEVEL"))
    json_logs: bool = Field(alias="JSON_LOGS", default=False, validation_alias=_prefixed("JSON_LOGS"))
    logging_enabled: bool = Field(alias="LOGGING_ENABLED", default=True, validation_alias=_prefixed("LOGGING_ENABLED"))

    # Rotation options (used only when json_logs is true and LOG_FILE is set)
    log_file: str | None = Field(alias="LOG_FILE", default=None, validation_alias=_prefixed("LOG_FILE"))
    log_rotation: Literal["time", "size"] = Field(alias="LOG_ROTATION", default="time", validation_alias=_prefixed("LOG_ROTATION"))
    log_max_bytes: int = Field(alias="LOG_MAX_BYTES", default=10_485_760, validation_alias=_prefixed("LOG_MAX_BYTES"))
    log_backup_count: int = Field(alias="LOG_BACKUP_COUNT", default=7, validation_alias=_prefixed("LOG_BACKUP_COUNT"))
    log_rotate_when: str = Field(alias="LOG_ROTATE_WHEN", default="midnight", validation_alias=_prefixed("LOG_ROTATE_WHEN"))
    log_rotate_utc: bool = Field(alias="LOG_ROTATE_UTC", default=True, validation_alias=_prefixed("LOG_ROTATE_UTC"))

    # Money and rate quantization
    money_scale: int = Field(alias="MONEY_SCALE", default=2, validation_alias=_prefixed("MONEY_SCALE"))
    rate_scale: int = Field(alias="RATE_SCALE", default=10, validation_alias=_prefixed("RATE_SCALE"))
    rounding: str = Field(alias="ROUNDING", default="ROUND_HALF_UP", validation_alias=_prefixed("ROUNDING"))

    # Budget-wide defaults threaded explicitly into engine calls by the SDK
    default_currency: str = Field(alias="DEFAULT_CURRENCY", default="EUR", validation_alias=_prefixed("DEFAULT_CURRENCY"))
    default_agency_percent: Decimal = Field(
        alias="DEFAULT_AGENCY_PERCENT", default=Decimal("10"), validation_alias=_prefixed("DEFAULT_AGENCY_PERCENT")
    )
    default_margin_percent: Decimal = Field(
        alias="DEFAULT_MARGIN_PERCENT", default=Decimal("15"), validation_alias=_prefixed("DEFAULT_MARGIN_PERCENT")
    )
    apply_social_charges_margins: bool = Field(
        alias="APPLY_SOCIAL_CHARGES_MARGINS", default=False, validation_alias=_prefixed("APPLY_SOCIAL_CHARGES_MARGINS")
    )
    overtime_base_hours: Decimal = Field(
        alias="OVERTIME_BASE_HOURS", default=Decimal("8"), validation_alias=_prefixed("OVERTIME_BASE_HOURS")
    )

    @field_validator("rounding")
    @classmethod
    def validate_rounding(cls, v: str) -> str:
        """Accept only rounding constants known to the decimal module."""
        name = v.strip().upper()
        if name not in _ROUNDING_MODES or not hasattr(dec, name):
            raise ValueError(f"Unknown rounding mode: {v!r}")
        return name

    @field_validator("default_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        code = v.strip().upper()
        if not (3 <= len(code) <= 10):
            raise ValueError(f"Invalid currency code length: {v!r}")
        return code

    @field_validator("money_scale", "rate_scale")
    @classmethod
    def validate_scale(cls, v: int) -> int:
        if v < 0 or v > 18:
            raise ValueError("Scale must be within 0..18")
        return v


class TestSettings(BaseAppSettings):
    """Test profile: verbose console logging."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    env: EnvName = Field(default="test")
    log_level: str = Field(alias="LOG_LEVEL", default="DEBUG", validation_alias=_prefixed("LOG_LEVEL"))
    json_logs: bool = Field(alias="JSON_LOGS", default=False, validation_alias=_prefixed("JSON_LOGS"))


class ProdSettings(BaseAppSettings):
    """Production profile: JSON logs at INFO."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    env: EnvName = Field(default="production")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO", validation_alias=_prefixed("LOG_LEVEL"))
    json_logs: bool = Field(alias="JSON_LOGS", default=True, validation_alias=_prefixed("JSON_LOGS"))


# Profiles that never read .env, for isolated tests
class TestSettingsNoFile(TestSettings):
    model_config = SettingsConfigDict(env_file=(), extra="ignore")


class ProdSettingsNoFile(ProdSettings):
    model_config = SettingsConfigDict(env_file=(), extra="ignore")


@lru_cache(maxsize=8)
def get_settings(forced_env: EnvName | None = None, *, ignore_env_file: bool = False) -> BaseAppSettings:
    """Settings factory keyed on the ENV variable, cached.

    Parameters:
    - forced_env: select the profile explicitly ("test" or "production"), overriding ENV.
    - ignore_env_file: skip reading .env (uses the *NoFile classes).
    """
    import os

    selector: EnvName = forced_env or os.getenv("ENV", "test")  # type: ignore[assignment]
    if selector == "production":
        cls = ProdSettingsNoFile if ignore_env_file else ProdSettings
    else:
        cls = TestSettingsNoFile if ignore_env_file else TestSettings

    instance = cls()
    instance.env = selector
    return instance
