from decimal import Decimal

from qualitrust.evaluation.domain.models import ServiceChecklist
from qualitrust.evaluation.rule_types.extra_call import ExtraCallRule


def _rule():
    return ExtraCallRule(
        rule_id="extra_call",
        title="Chamado extra",
        params={"pct_late": "2", "pct_ineffective": "2"},
    )


def test_no_extra_call_ignores_answers(make_ctx, make_line):
    checklist = ServiceChecklist(had_extra_call=False, extra_call_on_time=False, extra_call_effective=False)
    out = _rule().apply(ctx=make_ctx(insect=checklist), line=make_line())
    assert out.decision == "SKIPPED"


def test_extra_call_late_and_ineffective(make_ctx, make_line):
    checklist = ServiceChecklist(had_extra_call=True, extra_call_on_time=False, extra_call_effective=False)
    line = make_line()
    out = _rule().apply(ctx=make_ctx(insect=checklist), line=line)

    assert out.decision == "APPLIED"
    assert out.pct == Decimal("4")
    assert line.breakdown.codes() == ["EXTRA_CALL_LATE", "EXTRA_CALL_INEFFECTIVE"]


def test_extra_call_only_late(make_ctx, make_line):
    checklist = ServiceChecklist(had_extra_call=True, extra_call_on_time=False)
    out = _rule().apply(ctx=make_ctx(insect=checklist), line=make_line())
    assert out.pct == Decimal("2")
    assert out.meta == {"onTime": False, "effective": True}


def test_extra_call_handled_well_is_skipped(make_ctx, make_line):
    checklist = ServiceChecklist(had_extra_call=True)
    out = _rule().apply(ctx=make_ctx(insect=checklist), line=make_line())
    assert out.decision == "SKIPPED"
