from __future__ import annotations

from .base import D, Rule, RuleResult, register


@register
class GeneralComplianceRule(Rule):
    """
    Applies identically to every category: pct_per_flag for each failed
    general answer (employee not identified, no EPI, damage recovered,
    no proof of service delivered).
    """

    type_name = "general_compliance"

    def apply(self, ctx, line) -> RuleResult:
        failed = ctx.input.general.failed_flags()
        if not failed:
            return RuleResult.skipped({"failed": []})

        per_flag = self.pct_param("pct_per_flag", "2")
        pct = per_flag * D(len(failed))

        line.breakdown.add_discount(
            self.code,
            f"{self.title} ({len(failed)} item(s) não conforme(s))",
            pct,
        )
        return RuleResult.applied(pct, {"failed": failed, "pctPerFlag": str(per_flag)})
