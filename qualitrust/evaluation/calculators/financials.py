from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from qualitrust.core.logging_config import logger

from ..domain.models import CATEGORIES, Category, ServiceFinancials, ServiceSelection


@dataclass(frozen=True)
class CategoryTotals:
    category: Category
    value_cents: int
    discount_cents: int

    @property
    def final_cents(self) -> int:
        # may go negative when a manual discount exceeds the value
        return self.value_cents - self.discount_cents


@dataclass(frozen=True)
class FinancialSummary:
    per_category: Dict[Category, CategoryTotals] = field(default_factory=dict)

    @property
    def total_value_cents(self) -> int:
        return sum(t.value_cents for t in self.per_category.values())

    @property
    def total_discount_cents(self) -> int:
        return sum(t.discount_cents for t in self.per_category.values())

    @property
    def total_final_cents(self) -> int:
        return sum(t.final_cents for t in self.per_category.values())

    def negative_finals(self) -> List[Category]:
        return [c for c, t in self.per_category.items() if t.final_cents < 0]


def aggregate(selection: ServiceSelection, financials: Mapping[Category, ServiceFinancials]) -> FinancialSummary:
    """
    Selected categories only:
      value = area x unit price, final = value - discount
    Unselected categories contribute nothing (their rows stay in the record).
    """
    per_category: Dict[Category, CategoryTotals] = {}
    for category in CATEGORIES:
        if not selection.is_selected(category):
            continue
        fin = financials.get(category) or ServiceFinancials()
        per_category[category] = CategoryTotals(
            category=category,
            value_cents=fin.gross_cents,
            discount_cents=int(fin.discount_cents),
        )

    summary = FinancialSummary(per_category=per_category)
    negative = summary.negative_finals()
    if negative:
        logger.bind(categories=[c.value for c in negative]).warning("final_value_negative")
    return summary
