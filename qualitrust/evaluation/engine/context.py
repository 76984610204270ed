from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..domain.models import (
    Category,
    GeneralChecklist,
    ServiceChecklist,
    ServiceFinancials,
    TermiteChecklist,
)
from ..explain.breakdown_builder import Breakdown

D = Decimal


@dataclass(frozen=True)
class DiscountInput:
    """Everything the calculator reads. Checklists are optional per category."""

    general: GeneralChecklist = field(default_factory=GeneralChecklist)
    insect: Optional[ServiceChecklist] = None
    rodent: Optional[ServiceChecklist] = None
    termite: Optional[TermiteChecklist] = None
    financials: Dict[Category, ServiceFinancials] = field(default_factory=dict)

    def service_checklist(self, category: Category) -> Optional[ServiceChecklist]:
        if category == Category.INSECT:
            return self.insect
        if category == Category.RODENT:
            return self.rodent
        return None

    def financials_for(self, category: Category) -> ServiceFinancials:
        return self.financials.get(category) or ServiceFinancials()


@dataclass
class CategoryLine:
    """Per-category mutable state while the rules run."""

    category: Category
    area: D
    unit_price_cents: int
    breakdown: Breakdown = field(default_factory=Breakdown)
    pct_total: D = D("0")
    contributions: Dict[str, D] = field(default_factory=dict)
    rule_meta: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def gross_cents(self) -> int:
        return ServiceFinancials(area=self.area, unit_price_cents=self.unit_price_cents).gross_cents


@dataclass
class DiscountContext:
    input: DiscountInput
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def warn(self, code: str, message: str, **meta: Any) -> None:
        self.warnings.append({"code": code, "message": message, "meta": meta})
