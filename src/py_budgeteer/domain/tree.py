"""Lookup indices over a budget tree.

Selections reference nodes by identifier; they are re-resolved against a
freshly built :class:`TreeIndex` on every call instead of holding pointers.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import Category, CostLine

__all__ = ["TreeIndex"]


@dataclass(slots=True)
class TreeIndex:
    """Indices built once per computation.

    Attributes:
        category_by_id: top-level categories by id.
        node_by_id: every CostLine at any depth by id (first occurrence wins).
        ancestors_by_id: ids of ancestors (category first) for every CostLine.
    """

    category_by_id: dict[str, Category] = field(default_factory=dict)
    node_by_id: dict[str, CostLine] = field(default_factory=dict)
    ancestors_by_id: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, categories: Iterable[Category]) -> TreeIndex:
        index = cls()
        for category in categories:
            index.category_by_id.setdefault(category.id, category)
            index._index_lines(category.children, (category.id,))
        return index

    def _index_lines(self, lines: Iterable[CostLine], chain: tuple[str, ...]) -> None:
        for line in lines:
            if line.id not in self.node_by_id:
                self.node_by_id[line.id] = line
                self.ancestors_by_id[line.id] = chain
            if line.children:
                self._index_lines(line.children, (*chain, line.id))

    def resolve(self, node_id: str) -> Category | CostLine | None:
        category = self.category_by_id.get(node_id)
        if category is not None:
            return category
        return self.node_by_id.get(node_id)

    def ancestors(self, node_id: str) -> tuple[str, ...]:
        return self.ancestors_by_id.get(node_id, ())
