"""Budget tree value objects.

Public API:
- LineKind / DistributionKind: enumerations of node and distribution kinds.
- Distribution: allocation of a line into an expense bucket.
- CostLine: a node of the budget tree (sub-category, post or sub-post).
- Category: top-level container of cost lines.
- ChargeRate: a named social-charge class.
- ExpenseBucket: a secondary grouping used for distribution reporting.
- Budget: an immutable snapshot of categories, charge rates and buckets.

All objects are frozen; numeric fields are normalized to Decimal on init.
The engine derives values from these snapshots and never mutates them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import ValidationError
from .quantize import ZERO, to_decimal

__all__ = [
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
]

PERCENTAGE_UNIT = "percentage"

# Display-only pseudo-category; never part of base-cost accumulation.
SOCIAL_CHARGES_CATEGORY_ID = "social-charges"


class LineKind(str, Enum):
    CATEGORY = "category"
    SUB_CATEGORY = "subCategory"
    POST = "post"
    SUB_POST = "subPost"


class DistributionKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def _require_id(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} id must be a non-empty string: {value!r}")
    return value


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


@dataclass(slots=True, frozen=True)
class Distribution:
    """Share of a line attributed to an expense bucket.

    ``amount`` is a percentage (0..100) for PERCENTAGE and a money amount for FIXED.
    """

    bucket_id: str
    kind: DistributionKind | str
    amount: Decimal | int | str | float

    def __post_init__(self) -> None:
        _require_id(self.bucket_id, "Bucket")
        raw_kind = self.kind
        if isinstance(raw_kind, DistributionKind):
            kind = raw_kind
        elif isinstance(raw_kind, str):
            try:
                kind = DistributionKind(raw_kind.strip().lower())
            except ValueError as exc:
                raise ValidationError(f"Invalid distribution kind: {raw_kind!r}") from exc
        else:
            raise ValidationError(f"Invalid distribution kind type: {type(raw_kind)!r}")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(slots=True, frozen=True)
class CostLine:
    """A budget line below category level.

    Notes:
    - Monetary base is ``quantity * count * unit_rate + overtime_amount``.
    - ``unit == PERCENTAGE_UNIT`` lines are valued as ``unit_rate`` percent of the
      combined value of ``selected_references`` (plus their social charges when
      ``include_social_charges_in_base``); ``calculated_amount`` carries the
      resolved value once computed.
    - ``alternate_rate`` is the actual-cost rate used by cost-tracking views.
    - Once ``children`` is non-empty, the line's own quantity/rate fields are
      ignored by roll-up valuation.
    """

    id: str
    kind: LineKind | str = LineKind.POST
    name: str = ""
    quantity: Decimal | int | str | float | None = ZERO
    count: Decimal | int | str | float | None = ZERO
    unit_rate: Decimal | int | str | float | None = ZERO
    unit: str = ""
    alternate_rate: Decimal | int | str | float | None = None
    overtime_amount: Decimal | int | str | float | None = ZERO
    currency: str | None = None
    social_charge_type_id: str | None = None
    social_charge_rate_override: Decimal | int | str | float | None = None
    agency_percent: Decimal | int | str | float | None = None
    margin_percent: Decimal | int | str | float | None = None
    selected_references: tuple[str, ...] = ()
    include_social_charges_in_base: bool = False
    calculated_amount: Decimal | int | str | float | None = None
    distributions: tuple[Distribution, ...] = ()
    include_social_charges_in_distribution: bool = False
    children: tuple[CostLine, ...] = ()

    def __post_init__(self) -> None:
        _require_id(self.id, "Line")
        raw_kind = self.kind
        if isinstance(raw_kind, LineKind):
            kind = raw_kind
        else:
            try:
                kind = LineKind(str(raw_kind).strip())
            except ValueError as exc:
                raise ValidationError(f"Invalid line kind: {raw_kind!r}") from exc
        if kind == LineKind.CATEGORY:
            raise ValidationError("Categories are modelled by Category, not CostLine")
        object.__setattr__(self, "kind", kind)

        for name in ("quantity", "count", "unit_rate", "overtime_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        for name in ("alternate_rate", "social_charge_rate_override", "calculated_amount", "agency_percent", "margin_percent"):
            object.__setattr__(self, name, _optional_decimal(getattr(self, name)))

        if self.currency is not None:
            code = self.currency.strip().upper()
            object.__setattr__(self, "currency", code or None)
        if self.social_charge_type_id is not None and not str(self.social_charge_type_id).strip():
            object.__setattr__(self, "social_charge_type_id", None)

        object.__setattr__(self, "selected_references", tuple(self.selected_references))
        object.__setattr__(self, "distributions", tuple(self.distributions))
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, CostLine):
                raise ValidationError("Line children must be CostLine instances")
        object.__setattr__(self, "children", children)

    @property
    def is_percentage(self) -> bool:
        return self.unit == PERCENTAGE_UNIT

    @property
    def is_container(self) -> bool:
        return self.kind == LineKind.SUB_CATEGORY

    def effective_percents(
        self,
        default_agency_percent: Decimal | int | str | float = ZERO,
        default_margin_percent: Decimal | int | str | float = ZERO,
    ) -> tuple[Decimal, Decimal]:
        """(agency%, margin%) of the line; unset values inherit the defaults."""
        agency = self.agency_percent if self.agency_percent is not None else to_decimal(default_agency_percent)
        margin = self.margin_percent if self.margin_percent is not None else to_decimal(default_margin_percent)
        return agency, margin  # type: ignore[return-value]

    def walk(self) -> Iterator[CostLine]:
        """Yield this line and all descendants depth-first, in order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(slots=True, frozen=True)
class Category:
    """Top-level container: ordered posts and sub-categories."""

    id: str
    name: str = ""
    children: tuple[CostLine, ...] = ()

    def __post_init__(self) -> None:
        _require_id(self.id, "Category")
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, CostLine):
                raise ValidationError("Category children must be CostLine instances")
        object.__setattr__(self, "children", children)

    @property
    def kind(self) -> LineKind:
        return LineKind.CATEGORY

    def walk(self) -> Iterator[CostLine]:
        for child in self.children:
            yield from child.walk()


@dataclass(slots=True, frozen=True)
class ChargeRate:
    """Social-charge class: ``rate`` is a fraction (0.65 means 65%).

    ``agency_percent``/``margin_percent`` override the budget-wide defaults
    when margins are applied to aggregated charges of this type.
    """

    id: str
    label: str = ""
    rate: Decimal | int | str | float = ZERO
    agency_percent: Decimal | int | str | float | None = None
    margin_percent: Decimal | int | str | float | None = None

    def __post_init__(self) -> None:
        _require_id(self.id, "Charge rate")
        object.__setattr__(self, "rate", to_decimal(self.rate))
        object.__setattr__(self, "agency_percent", _optional_decimal(self.agency_percent))
        object.__setattr__(self, "margin_percent", _optional_decimal(self.margin_percent))


@dataclass(slots=True, frozen=True)
class ExpenseBucket:
    id: str
    name: str = ""

    def __post_init__(self) -> None:
        _require_id(self.id, "Bucket")


@dataclass(slots=True, frozen=True)
class Budget:
    """Immutable snapshot handed to the engine on every recomputation."""

    categories: tuple[Category, ...] = ()
    charge_rates: tuple[ChargeRate, ...] = ()
    buckets: tuple[ExpenseBucket, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "charge_rates", tuple(self.charge_rates))
        object.__setattr__(self, "buckets", tuple(self.buckets))

    def lines(self) -> Iterable[CostLine]:
        for category in self.categories:
            yield from category.walk()
