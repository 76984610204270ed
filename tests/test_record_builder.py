from __future__ import annotations

from decimal import Decimal

import pytest

from qualitrust.errors import ValidationFailed
from qualitrust.evaluation.calculators.financials import aggregate
from qualitrust.evaluation.domain.models import Baseline, Category, EvaluationStatus
from qualitrust.evaluation.domain.state import EvaluationState
from qualitrust.evaluation.engine.session import EvaluationSession
from qualitrust.evaluation.records import build_record, hydrate_record, hydrate_state
from qualitrust.store.profiles import EvaluatorProfile


@pytest.fixture
def filled_session(runner, today):
    s = EvaluationSession.new(today, runner=runner)
    s.set_reference_month(2, 2025)
    s.apply_baseline(
        Baseline(area=Decimal("1200.5"), prices={Category.INSECT: 4550, Category.TERMITE: 8575})
    )
    s.select_services(insect=True, termite=True)
    s.update_general(damage_recovered=True)
    s.update_checklist(Category.INSECT, followed_schedule=False, delay_days=4, had_extra_call=True, extra_call_on_time=False)
    s.update_checklist(Category.TERMITE, chemical_barrier_applied=True)
    return s


def test_build_record_shape(filled_session, profile, fixed_now):
    record = build_record(filled_session.state, profile, EvaluationStatus.COMPLETED, now=fixed_now)

    assert record["evaluatorId"] == "user-1"
    assert record["referenceMonth"] == "Fevereiro"
    assert record["referenceYear"] == 2025
    assert record["servicesSelected"] == {"disinsectization": True, "deratization": False, "termite": True}
    assert record["type"] == "Controle de Cupins"
    assert record["status"] == "Concluído"
    assert record["score"] == 100
    assert record["createdAt"] == record["date"] == fixed_now.isoformat()
    assert "updatedAt" not in record

    details = record["financials"]["details"]
    assert details["disinsectization"]["metrage"] == "1.200,50"
    assert details["disinsectization"]["unitPrice"] == "45,50"
    assert details["deratization"]["unitPrice"] == "0,00"
    assert set(record["financials"]["totals"]["perCategory"]) == {"disinsectization", "termite"}

    specific = record["specificEvaluation"]
    assert specific["deratization"] is None
    assert specific["termite"] == {"chemicalBarrier": True}
    assert specific["disinsectization"]["delayDays"] == 4


def test_build_is_pure(filled_session, profile, fixed_now):
    before = filled_session.state
    build_record(filled_session.state, profile, EvaluationStatus.DRAFT, now=fixed_now)
    assert filled_session.state == before


def test_update_uses_updated_at(filled_session, profile, fixed_now):
    record = build_record(filled_session.state, profile, EvaluationStatus.DRAFT, now=fixed_now, is_update=True)
    assert record["updatedAt"] == fixed_now.isoformat()
    assert "createdAt" not in record
    assert record["status"] == "Em Andamento"


def test_completed_requires_a_service(runner, today, profile):
    s = EvaluationSession.new(today, runner=runner)
    with pytest.raises(ValidationFailed) as exc:
        build_record(s.state, profile, EvaluationStatus.COMPLETED)
    assert "servicesSelected" in exc.value.errors

    # a draft may be empty
    assert build_record(s.state, profile, EvaluationStatus.DRAFT)["type"] == "Desinsetização"


def test_evaluator_identity_required(filled_session):
    anonymous = EvaluatorProfile(uid="x", name=" ", unit="", role="Titular")
    with pytest.raises(ValidationFailed) as exc:
        build_record(filled_session.state, anonymous, EvaluationStatus.DRAFT)
    assert set(exc.value.errors) == {"evaluatorName", "unit"}


def test_round_trip_reproduces_state_and_totals(filled_session, profile, fixed_now, today):
    state = filled_session.state
    record = build_record(state, profile, EvaluationStatus.COMPLETED, now=fixed_now)

    hydrated = hydrate_state(record, EvaluationState.blank(today))

    # unselected service blocks are not stored, so only the recorded parts are compared
    assert (hydrated.reference_month, hydrated.reference_year) == (state.reference_month, state.reference_year)
    assert hydrated.selection == state.selection
    assert hydrated.financials == state.financials
    assert hydrated.general == state.general
    assert hydrated.insect == state.insect
    assert hydrated.termite == state.termite
    rebuilt = build_record(hydrated, profile, EvaluationStatus.COMPLETED, now=fixed_now)
    assert rebuilt == record
    assert aggregate(hydrated.selection, hydrated.financials) == aggregate(state.selection, state.financials)


def test_unknown_month_keeps_default(today):
    state = hydrate_state({"referenceMonth": "Smarch", "referenceYear": 2020}, EvaluationState.blank(today))
    assert state.reference_month == today.month
    assert state.reference_year == 2020


def test_hydrate_tolerates_legacy_values(today):
    record = {
        "status": "Arquivado",
        "financials": {"details": {"deratization": {"metrage": 250, "unitPrice": "120,00", "discount": "abc"}}},
        "specificEvaluation": {"deratization": {"delayDays": "7", "followedSchedule": False}},
    }
    h = hydrate_record("ev1", record, EvaluationState.blank(today))

    assert h.status == EvaluationStatus.IN_PROGRESS
    fin = h.state.financials[Category.RODENT]
    assert (fin.area, fin.unit_price_cents, fin.discount_cents) == (Decimal("250"), 12000, 0)
    assert h.state.rodent.effective_delay_days == 7
