from decimal import Decimal

from qualitrust.evaluation.domain.models import Category, TermiteChecklist
from qualitrust.evaluation.rule_types.chemical_barrier import ChemicalBarrierRule


def _rule():
    return ChemicalBarrierRule(rule_id="chemical_barrier", title="Barreira química não aplicada", params={})


def test_missing_barrier_forfeits_everything(make_ctx, make_line):
    ctx = make_ctx(termite=TermiteChecklist(chemical_barrier_applied=False))
    line = make_line(Category.TERMITE)
    out = _rule().apply(ctx=ctx, line=line)

    assert out.decision == "APPLIED"
    assert out.pct == Decimal("100")
    assert line.breakdown.as_strings() == ["Barreira química não aplicada: -100%"]


def test_barrier_applied_skipped(make_ctx, make_line):
    out = _rule().apply(ctx=make_ctx(), line=make_line(Category.TERMITE))
    assert out.decision == "SKIPPED"
