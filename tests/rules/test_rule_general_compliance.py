from decimal import Decimal

from qualitrust.evaluation.domain.models import Category, GeneralChecklist
from qualitrust.evaluation.rule_types.general_compliance import GeneralComplianceRule


def _rule(**params):
    return GeneralComplianceRule(rule_id="general_compliance", title="Avaliação geral", params=params)


def test_general_compliance_skipped_when_compliant(make_ctx, make_line):
    line = make_line()
    out = _rule().apply(ctx=make_ctx(), line=line)

    assert out.decision == "SKIPPED"
    assert out.pct == Decimal("0")
    assert len(line.breakdown) == 0


def test_general_compliance_worst_case_is_eight_pct(make_ctx, make_line):
    general = GeneralChecklist(
        employee_identified=False, epi_used=False, damage_recovered=True, proof_delivered=False
    )
    line = make_line()
    out = _rule().apply(ctx=make_ctx(general=general), line=line)

    assert out.decision == "APPLIED"
    assert out.pct == Decimal("8")
    assert out.meta["failed"] == ["employee_identified", "epi_used", "damage_recovered", "proof_delivered"]
    assert line.breakdown.codes() == ["GENERAL_COMPLIANCE"]


def test_damage_recovered_counts_as_failure(make_ctx, make_line):
    out = _rule().apply(ctx=make_ctx(general=GeneralChecklist(damage_recovered=True)), line=make_line())
    assert out.pct == Decimal("2")


def test_general_compliance_same_for_termite(make_ctx, make_line):
    ctx = make_ctx(general=GeneralChecklist(epi_used=False))
    out = _rule().apply(ctx=ctx, line=make_line(Category.TERMITE))
    assert out.pct == Decimal("2")


def test_general_compliance_param_override(make_ctx, make_line):
    ctx = make_ctx(general=GeneralChecklist(epi_used=False, proof_delivered=False))
    out = _rule(pct_per_flag="1.5").apply(ctx=ctx, line=make_line())
    assert out.pct == Decimal("3.0")
