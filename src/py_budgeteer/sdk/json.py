"""JSON presenter for py_budgeteer results.

Provides deterministic, JSON-safe serialization helpers:
- to_dict(obj, quantize_money=False): convert nested structures to JSON-safe forms.
  Supported: dict/Mapping, list/tuple, primitives, Decimal (str), Enum (value),
  dataclasses (field by field) and simple objects (public attributes).
- to_json(data, quantize_money=False): json.dumps with ensure_ascii=False,
  compact separators and sorted keys.

Notes:
- Engine results are unquantized; ``quantize_money`` rounds every Decimal to
  the configured money scale for display.
- Does not mutate global Decimal context.
"""
from __future__ import annotations

import json as _json
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from py_budgeteer.domain.quantize import money_quantize

__all__ = ["to_dict", "to_json"]


def _is_primitive(x: Any) -> bool:
    return isinstance(x, (str, int, float, bool)) or x is None


def _to_mapping(obj: Any) -> dict[str, Any]:
    # Shallow on purpose: nested values are handled by to_dict
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in fields(obj)}
    if hasattr(obj, "__dict__"):
        return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
    return {"value": str(obj)}


def to_dict(obj: Any, quantize_money: bool = False) -> Any:
    """Convert input to a JSON-safe structure.

    - Enum -> its value (checked before primitives: str enums stay plain strings)
    - Decimal -> str, optionally money-quantized
    - Mapping/list/tuple -> recurse
    - dataclasses/objects -> mapping of their fields
    """
    if isinstance(obj, Enum):
        return obj.value
    if _is_primitive(obj):
        return obj
    if isinstance(obj, Decimal):
        return str(money_quantize(obj) if quantize_money else obj)
    if isinstance(obj, (list, tuple)):
        return [to_dict(x, quantize_money) for x in obj]
    if isinstance(obj, Mapping):
        return {str(k): to_dict(v, quantize_money) for k, v in obj.items()}
    mapping = _to_mapping(obj)
    return {str(k): to_dict(v, quantize_money) for k, v in mapping.items()}


def to_json(data: Any, quantize_money: bool = False) -> str:
    """Dump input as deterministic JSON string using to_dict normalization."""
    return _json.dumps(to_dict(data, quantize_money), ensure_ascii=False, separators=(",", ":"), sort_keys=True)
