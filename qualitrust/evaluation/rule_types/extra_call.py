from __future__ import annotations

from .base import D, Rule, RuleResult, register


@register
class ExtraCallRule(Rule):
    """
    Only evaluated when an extra (complaint) call happened:
      - pct_late when it was not answered on time
      - pct_ineffective when it did not solve the problem
    """

    type_name = "extra_call"

    def apply(self, ctx, line) -> RuleResult:
        checklist = ctx.input.service_checklist(line.category)
        if checklist is None or not checklist.had_extra_call:
            return RuleResult.skipped({"extraCall": False})

        pct = D("0")
        if not checklist.extra_call_on_time:
            late = self.pct_param("pct_late", "2")
            line.breakdown.add_discount(f"{self.code}_LATE", f"{self.title}: fora do prazo", late)
            pct += late
        if not checklist.extra_call_effective:
            ineffective = self.pct_param("pct_ineffective", "2")
            line.breakdown.add_discount(
                f"{self.code}_INEFFECTIVE", f"{self.title}: sem eficácia", ineffective
            )
            pct += ineffective

        if pct <= 0:
            return RuleResult.skipped({"extraCall": True})
        return RuleResult.applied(
            pct,
            {
                "onTime": checklist.extra_call_on_time,
                "effective": checklist.extra_call_effective,
            },
        )
