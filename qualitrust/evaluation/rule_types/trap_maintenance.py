from __future__ import annotations

from .base import Rule, RuleResult, register


@register
class TrapMaintenanceRule(Rule):
    type_name = "trap_maintenance"

    def apply(self, ctx, line) -> RuleResult:
        checklist = ctx.input.service_checklist(line.category)
        if checklist is None or checklist.traps_maintained:
            return RuleResult.skipped()

        pct = self.pct_param("pct", "2")
        line.breakdown.add_discount(self.code, self.title, pct)
        return RuleResult.applied(pct)
