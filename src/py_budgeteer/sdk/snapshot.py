"""Load budget snapshots from plain mappings and JSON files.

Accepted layout (camelCase as exported by the editing UI, snake_case also
accepted for every key)::

    {
      "currency": "EUR",
      "rates": {"EUR": 1, "USD": 1.1},
      "categories": [{"id": "c1", "name": "Crew", "items": [<line>, ...]}],
      "chargeRates": [{"id": "tech", "label": "Technicians", "rate": 0.65}],
      "buckets": [{"id": "b1", "name": "Shooting"}]
    }

A line uses ``unitRate``/``rate``, ``count``/``number``, ``children``/``subItems``
and so on (see ``_LINE_KEYS``). The legacy unit token ``"%"`` is read as a
percentage line. Unknown keys are ignored.
"""
from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from py_budgeteer.domain.currencies import RateTable, build_rate_table
from py_budgeteer.domain.errors import ValidationError
from py_budgeteer.domain.models import (
    PERCENTAGE_UNIT,
    Budget,
    Category,
    ChargeRate,
    CostLine,
    Distribution,
    ExpenseBucket,
)

__all__ = ["read_snapshot_file", "load_budget", "load_budget_file", "load_rate_table"]

_LEGACY_PERCENTAGE_UNIT = "%"

# field name -> accepted keys, first present wins
_LINE_KEYS: dict[str, tuple[str, ...]] = {
    "kind": ("kind", "type"),
    "name": ("name",),
    "quantity": ("quantity",),
    "count": ("count", "number"),
    "unit_rate": ("unit_rate", "unitRate", "rate"),
    "unit": ("unit",),
    "alternate_rate": ("alternate_rate", "alternateRate", "cost"),
    "overtime_amount": ("overtime_amount", "overtimeAmount", "overtime"),
    "currency": ("currency",),
    "social_charge_type_id": ("social_charge_type_id", "socialChargeTypeId", "socialCharges"),
    "social_charge_rate_override": ("social_charge_rate_override", "socialChargeRateOverride", "socialChargeRate"),
    "agency_percent": ("agency_percent", "agencyPercent"),
    "margin_percent": ("margin_percent", "marginPercent"),
    "selected_references": ("selected_references", "selectedReferences", "selectedCategories"),
    "include_social_charges_in_base": (
        "include_social_charges_in_base",
        "includeSocialChargesInBase",
        "includeSocialCharges",
    ),
    "calculated_amount": ("calculated_amount", "calculatedAmount"),
    "include_social_charges_in_distribution": (
        "include_social_charges_in_distribution",
        "includeSocialChargesInDistribution",
    ),
}
_CHILDREN_KEYS = ("children", "subItems", "sub_items", "items")
_CHARGE_RATE_KEYS = ("charge_rates", "chargeRates", "socialChargeRates")
_BUCKET_KEYS = ("buckets", "expense_buckets", "expenseBuckets")


def _pick(data: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _require_list(data: Any, what: str) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, (list, tuple)):
        raise ValidationError(f"{what} must be a list, got {type(data).__name__}")
    return list(data)


def _load_distribution(data: Any) -> Distribution:
    d = _require_mapping(data, "Distribution")
    return Distribution(
        bucket_id=_pick(d, ("bucket_id", "bucketId", "id")),
        kind=_pick(d, ("kind", "type"), "percentage"),
        amount=_pick(d, ("amount",), 0),
    )


def _load_line(data: Any) -> CostLine:
    d = _require_mapping(data, "Line")
    kwargs: dict[str, Any] = {}
    for field_name, keys in _LINE_KEYS.items():
        value = _pick(d, keys)
        if value is not None:
            kwargs[field_name] = value
    if kwargs.get("unit") == _LEGACY_PERCENTAGE_UNIT:
        kwargs["unit"] = PERCENTAGE_UNIT
    if "selected_references" in kwargs:
        kwargs["selected_references"] = tuple(_require_list(kwargs["selected_references"], "selectedReferences"))
    for flag in ("include_social_charges_in_base", "include_social_charges_in_distribution"):
        if flag in kwargs:
            kwargs[flag] = bool(kwargs[flag])
    distributions = _require_list(d.get("distributions"), "distributions")
    children = _require_list(_pick(d, _CHILDREN_KEYS), "children")
    return CostLine(
        id=d.get("id"),  # type: ignore[arg-type]
        distributions=tuple(_load_distribution(x) for x in distributions),
        children=tuple(_load_line(x) for x in children),
        **kwargs,
    )


def _load_category(data: Any) -> Category:
    d = _require_mapping(data, "Category")
    children = _require_list(_pick(d, _CHILDREN_KEYS), "items")
    return Category(id=d.get("id"), name=d.get("name") or "", children=tuple(_load_line(x) for x in children))  # type: ignore[arg-type]


def _load_charge_rate(data: Any) -> ChargeRate:
    d = _require_mapping(data, "Charge rate")
    return ChargeRate(
        id=d.get("id"),  # type: ignore[arg-type]
        label=d.get("label") or "",
        rate=d.get("rate", 0),
        agency_percent=_pick(d, ("agency_percent", "agencyPercent")),
        margin_percent=_pick(d, ("margin_percent", "marginPercent")),
    )


def _load_bucket(data: Any) -> ExpenseBucket:
    d = _require_mapping(data, "Bucket")
    return ExpenseBucket(id=d.get("id"), name=d.get("name") or "")  # type: ignore[arg-type]


def load_budget(data: Mapping[str, Any]) -> Budget:
    """Build an immutable Budget from a snapshot mapping.

    Raises:
        ValidationError: on structurally invalid input (missing ids, bad kinds,
            non-numeric amounts, lists where objects are expected).
    """
    d = _require_mapping(data, "Budget snapshot")
    return Budget(
        categories=tuple(_load_category(x) for x in _require_list(d.get("categories"), "categories")),
        charge_rates=tuple(_load_charge_rate(x) for x in _require_list(_pick(d, _CHARGE_RATE_KEYS), "chargeRates")),
        buckets=tuple(_load_bucket(x) for x in _require_list(_pick(d, _BUCKET_KEYS), "buckets")),
    )


def load_rate_table(data: Mapping[str, Any] | None) -> RateTable:
    """Rate table from ``{"EUR": 1, "USD": "1.1"}``; ``None`` gives an empty table."""
    if data is None:
        return build_rate_table({})
    return build_rate_table(_require_mapping(data, "Rate table"))


def read_snapshot_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON document from ``path``.

    Raises:
        FileNotFoundError: when the file does not exist.
        ValidationError: when the content is not a JSON object.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON in {path}: {exc.msg} (line {exc.lineno})") from exc
    return dict(_require_mapping(data, f"Content of {path}"))


def load_budget_file(path: str | Path) -> Budget:
    return load_budget(read_snapshot_file(path))
