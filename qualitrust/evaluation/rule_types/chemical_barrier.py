from __future__ import annotations

from .base import Rule, RuleResult, register


@register
class ChemicalBarrierRule(Rule):
    """No chemical barrier => the whole termite value is forfeited (pct=100)."""

    type_name = "chemical_barrier"

    def apply(self, ctx, line) -> RuleResult:
        checklist = ctx.input.termite
        if checklist is None or checklist.chemical_barrier_applied:
            return RuleResult.skipped()

        pct = self.pct_param("pct", "100")
        line.breakdown.add_discount(self.code, self.title, pct)
        return RuleResult.applied(pct)
