from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Optional

from .models import (
    CATEGORIES,
    Category,
    GeneralChecklist,
    ServiceChecklist,
    ServiceFinancials,
    ServiceSelection,
    TermiteChecklist,
)


def _default_financials() -> Dict[Category, ServiceFinancials]:
    return {c: ServiceFinancials() for c in CATEGORIES}


@dataclass
class EvaluationState:
    """Form state of one evaluation; the compliant defaults yield zero discount."""

    reference_month: int
    reference_year: int
    selection: ServiceSelection = field(default_factory=ServiceSelection)
    financials: Dict[Category, ServiceFinancials] = field(default_factory=_default_financials)
    general: GeneralChecklist = field(default_factory=GeneralChecklist)
    insect: ServiceChecklist = field(default_factory=ServiceChecklist)
    rodent: ServiceChecklist = field(default_factory=ServiceChecklist)
    termite: TermiteChecklist = field(default_factory=TermiteChecklist)

    @classmethod
    def blank(cls, today: Optional[date] = None) -> "EvaluationState":
        today = today or date.today()
        return cls(reference_month=today.month, reference_year=today.year)

    def copy(self) -> "EvaluationState":
        # members are frozen dataclasses; only the dict needs its own copy
        return replace(self, financials=dict(self.financials))

    def service_checklist(self, category: Category) -> ServiceChecklist:
        if category == Category.INSECT:
            return self.insect
        if category == Category.RODENT:
            return self.rodent
        raise ValueError(f"{category.value} has no service checklist")
