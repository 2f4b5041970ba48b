"""Percentage bases: the deduplicated value of a user-chosen set of tree nodes.

Public API:
- BaseEntry / PercentageBaseResult: total plus an itemized audit breakdown.
- resolve_base: sum the nodes referenced by a selection, counting each node once.
- fingerprint: structural cache key over a selection and the subtree it resolves to.
- pricing_signature: amounts, rate table and charge table a selection is priced with.
- base_cache_key: fingerprint, valuation parameters and pricing signature.
- percentage_line_value: ``unit_rate`` percent of a resolved base.
- resolve_percentage_lines: new snapshot with every percentage line valued.

Counting rules:
- A selected category or sub-category contributes every line below it.
- A selected node with a selected ancestor contributes nothing on its own:
  it is attributed to the ancestor, whatever the selection order.
- A node is counted at most once per resolution (``visited``); revisiting it,
  or reaching the percentage line that owns the selection, contributes 0.
- Unresolvable ids contribute 0 and are absent from the breakdown.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from .cache import FingerprintCache
from .diagnostics import DiagnosticKind, Diagnostics
from .models import Category, CostLine, LineKind
from .quantize import HUNDRED, ZERO
from .social_charges import ChargeRates, charge_amount, index_charge_rates
from .tree import TreeIndex
from .valuation import valuate

__all__ = [
    "BaseEntry",
    "PercentageBaseResult",
    "resolve_base",
    "fingerprint",
    "pricing_signature",
    "base_cache_key",
    "percentage_line_value",
    "resolve_percentage_lines",
]

_SEPARATOR = "|"


@dataclass(slots=True, frozen=True)
class BaseEntry:
    """One node of the audit breakdown; not used for further computation."""

    id: str
    name: str
    kind: LineKind
    amount: Decimal
    children: tuple[BaseEntry, ...] = ()


@dataclass(slots=True, frozen=True)
class PercentageBaseResult:
    total: Decimal
    breakdown: tuple[BaseEntry, ...] = ()


class _BaseResolver:
    """Single-use walker holding the visited set of one resolution."""

    def __init__(
        self,
        index: TreeIndex,
        selected: Sequence[str],
        target_currency: str,
        rates: Mapping[str, Decimal],
        include_social_charges: bool,
        charge_rates: dict,
        use_alternate_rate: bool,
        owner_id: str | None,
        diagnostics: Diagnostics | None,
    ) -> None:
        self.index = index
        self.selected = list(selected)
        self.selected_set = set(selected)
        self.target_currency = target_currency
        self.rates = rates
        self.include_social_charges = include_social_charges
        self.charge_rates = charge_rates
        self.use_alternate_rate = use_alternate_rate
        self.owner_id = owner_id
        self.diagnostics = diagnostics
        self.visited: set[str] = set()

    def run(self) -> PercentageBaseResult:
        total = ZERO
        breakdown: list[BaseEntry] = []
        for node_id in self.selected:
            entry = self._resolve_selected(node_id)
            if entry is None:
                continue
            total += entry.amount
            breakdown.append(entry)
        return PercentageBaseResult(total=total, breakdown=tuple(breakdown))

    def _resolve_selected(self, node_id: str) -> BaseEntry | None:
        category = self.index.category_by_id.get(node_id)
        if category is not None:
            if node_id in self.visited:
                return None
            self.visited.add(node_id)
            return self._sum_container(category.id, category.name, LineKind.CATEGORY, category.children)

        node = self.index.node_by_id.get(node_id)
        if node is None:
            if self.diagnostics is not None:
                self.diagnostics.add(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    node_id,
                    f"Selected reference {node_id!r} does not resolve; contributes 0",
                )
            return None

        if any(a in self.selected_set for a in self.index.ancestors(node_id)):
            # covered by a selected ancestor
            return None
        return self._sum_node(node)

    def _sum_container(
        self, node_id: str, name: str, kind: LineKind, children: Iterable[CostLine]
    ) -> BaseEntry:
        entries = [e for e in (self._sum_node(child) for child in children) if e is not None]
        amount = sum((e.amount for e in entries), ZERO)
        return BaseEntry(id=node_id, name=name, kind=kind, amount=amount, children=tuple(entries))

    def _sum_node(self, node: CostLine) -> BaseEntry | None:
        if node.id in self.visited or node.id == self.owner_id:
            if node.id == self.owner_id and self.diagnostics is not None:
                self.diagnostics.add(
                    DiagnosticKind.CYCLIC_REFERENCE,
                    node.id,
                    f"Line {node.id!r} is part of its own percentage base; counted as 0",
                )
            return None
        self.visited.add(node.id)
        if node.children:
            return self._sum_container(node.id, node.name, node.kind, node.children)  # type: ignore[arg-type]
        return BaseEntry(id=node.id, name=node.name, kind=node.kind, amount=self._leaf_value(node))  # type: ignore[arg-type]

    def _leaf_value(self, line: CostLine) -> Decimal:
        amount = valuate(
            line,
            self.target_currency,
            self.rates,
            self.use_alternate_rate,
            rollup=False,
            diagnostics=self.diagnostics,
        )
        if self.include_social_charges and line.social_charge_type_id:
            amount += charge_amount(
                line,
                self.charge_rates,
                self.use_alternate_rate,
                target_currency=self.target_currency,
                rates=self.rates,
                diagnostics=self.diagnostics,
            )
        return amount


def resolve_base(
    selected_ids: Sequence[str] | None,
    categories: Sequence[Category] | TreeIndex,
    target_currency: str,
    rates: Mapping[str, Decimal],
    include_social_charges: bool = False,
    *,
    charge_rates: ChargeRates | None = None,
    use_alternate_rate: bool = False,
    owner_id: str | None = None,
    diagnostics: Diagnostics | None = None,
) -> PercentageBaseResult:
    """Compute the deduplicated value represented by ``selected_ids``.

    Args:
        selected_ids: Ordered ids of categories, sub-categories, posts or sub-posts.
        categories: The full tree, or a prebuilt TreeIndex over it.
        target_currency: Currency every line is valued in.
        rates: Rate table used for per-line currency overrides.
        include_social_charges: Add each leaf's social charges to its value.
        charge_rates: Charge-rate table, required when charges are included.
        use_alternate_rate: Value lines at their alternate (actual-cost) rate.
        owner_id: Id of the percentage line owning the selection; it never
            counts towards its own base.
        diagnostics: Optional collector for unresolved and cyclic references.

    Returns:
        PercentageBaseResult with ``total`` and one breakdown entry per counted
        top-level id. Empty selection gives ``total == 0`` and no entries.
    """
    if categories is None:
        raise TypeError("categories must not be None")
    if not selected_ids:
        return PercentageBaseResult(total=ZERO, breakdown=())
    index = categories if isinstance(categories, TreeIndex) else TreeIndex.build(categories)
    return _BaseResolver(
        index,
        selected_ids,
        target_currency,
        rates,
        include_social_charges,
        index_charge_rates(charge_rates),
        use_alternate_rate,
        owner_id,
        diagnostics,
    ).run()


def _escape(text: str) -> str:
    out = text.replace("\\", "\\\\")
    for ch in ":[],|":
        out = out.replace(ch, "\\" + ch)
    return out


def _serialize_line(line: CostLine) -> str:
    kind = line.kind.value if isinstance(line.kind, LineKind) else str(line.kind)
    base = f"node:{_escape(line.id)}:{_escape(line.name)}:{kind}"
    if line.children:
        base += "[" + ",".join(_serialize_line(child) for child in line.children) + "]"
    return base


def _serialize_category(category: Category) -> str:
    base = f"cat:{_escape(category.id)}:{_escape(category.name)}"
    if category.children:
        base += "[" + ",".join(_serialize_line(child) for child in category.children) + "]"
    return base


def fingerprint(selected_ids: Sequence[str] | None, categories: Sequence[Category] | TreeIndex) -> str:
    """Deterministic structural key for a selection and the subtrees it resolves to.

    Renaming, adding, removing or reordering any node below a selected id changes
    the key; amounts do not take part. Side-effect free.
    """
    if not selected_ids:
        return ""
    index = categories if isinstance(categories, TreeIndex) else TreeIndex.build(categories)
    parts: list[str] = []
    for node_id in selected_ids:
        category = index.category_by_id.get(node_id)
        if category is not None:
            parts.append(_serialize_category(category))
            continue
        node = index.node_by_id.get(node_id)
        if node is not None:
            parts.append(_serialize_line(node))
        else:
            parts.append(f"unknown:{_escape(node_id)}")
    return _SEPARATOR.join(parts)


def _line_pricing(line: CostLine) -> tuple:
    return (
        line.id,
        line.quantity,
        line.count,
        line.unit_rate,
        line.alternate_rate,
        line.overtime_amount,
        line.currency,
        line.unit,
        line.calculated_amount,
        line.social_charge_type_id,
        line.social_charge_rate_override,
    )


def pricing_signature(
    selected_ids: Sequence[str] | None,
    categories: Sequence[Category] | TreeIndex,
    rates: Mapping[str, Decimal] | None = None,
    charge_rates: ChargeRates | None = None,
) -> tuple:
    """Amounts a resolution depends on: selected lines, rate table and charge table.

    Complements ``fingerprint``, which is structural only.
    """
    index = categories if isinstance(categories, TreeIndex) else TreeIndex.build(categories)
    lines: list[tuple] = []
    for node_id in selected_ids or ():
        node = index.resolve(node_id)
        if node is not None:
            lines.extend(_line_pricing(line) for line in node.walk())
    table = tuple(sorted((code, rate) for code, rate in (rates or {}).items()))
    charges = tuple(
        sorted((r.id, r.rate) for r in index_charge_rates(charge_rates).values())
    )
    return tuple(lines), table, charges


def base_cache_key(
    selected_ids: Sequence[str] | None,
    categories: Sequence[Category] | TreeIndex,
    target_currency: str,
    include_social_charges: bool = False,
    use_alternate_rate: bool = False,
    owner_id: str | None = None,
    *,
    rates: Mapping[str, Decimal] | None = None,
    charge_rates: ChargeRates | None = None,
) -> tuple:
    """Cache key for one resolution: structure, parameters and the amounts priced.

    Two keys are equal only when the resolution would give the same result, so a
    cache may be shared across snapshots and rate tables.
    """
    return (
        fingerprint(selected_ids, categories),
        target_currency.strip().upper(),
        bool(include_social_charges),
        bool(use_alternate_rate),
        owner_id,
        pricing_signature(selected_ids, categories, rates, charge_rates),
    )


def percentage_line_value(line: CostLine, base_total: Decimal) -> Decimal:
    """``unit_rate`` percent of ``base_total`` (unit_rate 20 means 20%)."""
    return line.unit_rate * base_total / HUNDRED  # type: ignore[operator]


def resolve_percentage_lines(
    categories: Sequence[Category],
    target_currency: str,
    rates: Mapping[str, Decimal],
    charge_rates: ChargeRates | None = None,
    use_alternate_rate: bool = False,
    *,
    cache: FingerprintCache[PercentageBaseResult] | None = None,
    diagnostics: Diagnostics | None = None,
) -> tuple[Category, ...]:
    """Return a copy of ``categories`` where every percentage line carries its value.

    Bases are resolved against the input snapshot: a percentage line that
    selects another percentage line sees that line's incoming
    ``calculated_amount``. Identical selections are resolved once through
    ``cache`` (a fresh cache per call when omitted); a shared cache stays
    valid across snapshots because keys include the priced amounts.
    """
    index = TreeIndex.build(categories)
    memo: FingerprintCache[PercentageBaseResult] = cache if cache is not None else FingerprintCache()
    rate_index = index_charge_rates(charge_rates)

    def _owner_in_scope(line: CostLine) -> bool:
        scope = set(line.selected_references)
        return line.id in scope or any(a in scope for a in index.ancestors(line.id))

    def _value(line: CostLine) -> Decimal:
        selection = line.selected_references
        # the owner only shapes the result when it lies inside its own selection
        key = base_cache_key(
            selection,
            index,
            target_currency,
            line.include_social_charges_in_base,
            use_alternate_rate,
            line.id if _owner_in_scope(line) else None,
            rates=rates,
            charge_rates=rate_index,
        )
        result = memo.get_or_compute(
            key,
            lambda: resolve_base(
                selection,
                index,
                target_currency,
                rates,
                line.include_social_charges_in_base,
                charge_rates=rate_index,
                use_alternate_rate=use_alternate_rate,
                owner_id=line.id,
                diagnostics=diagnostics,
            ),
        )
        return percentage_line_value(line, result.total)

    def _rewrite(line: CostLine) -> CostLine:
        if line.children:
            return replace(line, children=tuple(_rewrite(child) for child in line.children))
        if line.is_percentage:
            return replace(line, calculated_amount=_value(line))
        return line

    return tuple(replace(c, children=tuple(_rewrite(line) for line in c.children)) for c in categories)
