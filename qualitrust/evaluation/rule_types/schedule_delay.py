from __future__ import annotations

from .base import D, Rule, RuleResult, register


@register
class ScheduleDelayRule(Rule):
    """pct_per_day x delayDays when the schedule was not followed. Uncapped here."""

    type_name = "schedule_delay"

    def apply(self, ctx, line) -> RuleResult:
        checklist = ctx.input.service_checklist(line.category)
        if checklist is None:
            return RuleResult.skipped({"reason": "no_checklist"})

        days = checklist.effective_delay_days
        if days <= 0:
            return RuleResult.skipped({"delayDays": days})

        per_day = self.pct_param("pct_per_day", "0.2")
        pct = per_day * D(days)

        line.breakdown.add_discount(self.code, f"{self.title} ({days} dia(s))", pct)
        return RuleResult.applied(pct, {"delayDays": days, "pctPerDay": str(per_day)})
