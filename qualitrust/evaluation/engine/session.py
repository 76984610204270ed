from __future__ import annotations

from dataclasses import fields, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from qualitrust.core.logging_config import logger
from qualitrust.errors import ValidationFailed

from ..calculators.financials import FinancialSummary, aggregate
from ..domain.models import CATEGORIES, Baseline, Category, EvaluationStatus, ServiceFinancials
from ..domain.state import EvaluationState
from ..records.builder import hydrate_record
from .context import DiscountInput
from .rule_runner import DiscountOutcome, DiscountRunner
from .tariff_resolver import Resolution


def _apply_changes(obj: Any, changes: Dict[str, Any]) -> Any:
    allowed = {f.name for f in fields(obj)}
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationFailed({name: "Unknown field." for name in unknown})
    try:
        return replace(obj, **changes)
    except ValueError as e:
        raise ValidationFailed({next(iter(changes)): str(e)}) from e


class EvaluationSession:
    """
    Single owner of one in-progress evaluation.

    Every checklist/baseline mutation ends in recompute(); recompute() writes a
    category discount only when the computed value differs from the stored one,
    so a manual override survives until the next relevant change.
    """

    def __init__(
        self,
        state: EvaluationState,
        *,
        runner: Optional[DiscountRunner] = None,
        evaluation_id: Optional[str] = None,
        status: Optional[EvaluationStatus] = None,
        evaluator_id: Optional[str] = None,
        recompute_on_start: bool = True,
    ):
        if runner is None:
            from .policy_loader import default_runner

            runner = default_runner()
        self._state = state
        self._runner = runner
        self.evaluation_id = evaluation_id
        self.status = status
        self.evaluator_id = evaluator_id
        self.last_outcome: Optional[DiscountOutcome] = None
        if recompute_on_start:
            self.recompute()

    @classmethod
    def new(cls, today: Optional[date] = None, *, runner: Optional[DiscountRunner] = None) -> "EvaluationSession":
        return cls(EvaluationState.blank(today), runner=runner)

    @classmethod
    def from_record(
        cls,
        evaluation_id: str,
        record: Mapping[str, Any],
        *,
        today: Optional[date] = None,
        runner: Optional[DiscountRunner] = None,
    ) -> "EvaluationSession":
        """Stored discounts (overrides included) are kept as-is until the next change."""
        hydrated = hydrate_record(evaluation_id, record, EvaluationState.blank(today))
        return cls(
            hydrated.state,
            runner=runner,
            evaluation_id=hydrated.evaluation_id,
            status=hydrated.status,
            evaluator_id=hydrated.evaluator_id,
            recompute_on_start=False,
        )

    # ---- read ------------------------------------------------------

    @property
    def state(self) -> EvaluationState:
        return self._state.copy()

    def financials(self, category: Category) -> ServiceFinancials:
        return self._state.financials[category]

    def discount_input(self) -> DiscountInput:
        s = self._state
        return DiscountInput(
            general=s.general,
            insect=s.insect,
            rodent=s.rodent,
            termite=s.termite,
            financials=dict(s.financials),
        )

    def preview(self) -> DiscountOutcome:
        """Computed discounts with their breakdown; stored values are not touched."""
        return self._runner.run(self.discount_input())

    def totals(self) -> FinancialSummary:
        return aggregate(self._state.selection, self._state.financials)

    # ---- mutations -------------------------------------------------

    def set_reference_month(self, month: int, year: Optional[int] = None) -> None:
        if not 1 <= int(month) <= 12:
            raise ValidationFailed({"reference_month": "Month must be between 1 and 12."})
        self._state.reference_month = int(month)
        if year is not None:
            self._state.reference_year = int(year)

    def select_services(self, **flags: bool) -> None:
        # selection only affects totals, discounts are computed for every category
        self._state.selection = _apply_changes(self._state.selection, flags)

    def update_general(self, **changes: Any) -> List[Category]:
        self._state.general = _apply_changes(self._state.general, changes)
        return self.recompute()

    def update_checklist(self, category: Category, **changes: Any) -> List[Category]:
        category = Category(category)
        if category == Category.TERMITE:
            self._state.termite = _apply_changes(self._state.termite, changes)
        elif category == Category.INSECT:
            self._state.insect = _apply_changes(self._state.insect, changes)
        else:
            self._state.rodent = _apply_changes(self._state.rodent, changes)
        return self.recompute()

    def apply_baseline(self, baseline: Union[Baseline, Resolution]) -> List[Category]:
        if isinstance(baseline, Resolution):
            baseline = baseline.baseline
        for category in CATEGORIES:
            current = self._state.financials[category]
            self._state.financials[category] = replace(
                current, area=baseline.area, unit_price_cents=baseline.price(category)
            )
        # executed area defaults to the unit's floor area
        self._state.insect = replace(self._state.insect, executed_area=baseline.area)
        self._state.rodent = replace(self._state.rodent, executed_area=baseline.area)
        return self.recompute()

    def override_discount(self, category: Category, discount_cents: int) -> None:
        category = Category(category)
        if int(discount_cents) < 0:
            raise ValidationFailed({"discount": "Discount cannot be negative."})
        current = self._state.financials[category]
        self._state.financials[category] = replace(current, discount_cents=int(discount_cents))
        logger.bind(category=category.value, discount_cents=int(discount_cents)).info("discount_overridden")

    # ---- recompute-on-change ----------------------------------------

    def recompute(self) -> List[Category]:
        outcome = self._runner.run(self.discount_input())
        self.last_outcome = outcome

        changed: List[Category] = []
        for category, computed in outcome.discounts().items():
            current = self._state.financials[category]
            if current.discount_cents == computed:
                continue
            self._state.financials[category] = replace(current, discount_cents=computed)
            changed.append(category)

        logger.bind(changed=[c.value for c in changed]).debug("discounts_recomputed")
        return changed
