from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from qualitrust.db import init_db, make_engine, make_session_factory
from qualitrust.errors import EvaluationLocked, EvaluationNotFound, NotEvaluationOwner, PersistenceError
from qualitrust.evaluation.domain.models import Baseline, Category, EvaluationStatus
from qualitrust.evaluation.service import EvaluationService, display_id
from qualitrust.store.documents import DocumentStore


def _filled(service, today):
    s = service.new_session(today)
    s.apply_baseline(Baseline(area=Decimal("500"), prices={Category.INSECT: 4550}))
    s.select_services(insect=True)
    s.update_checklist(Category.INSECT, followed_schedule=False, delay_days=5)
    return s


def test_submit_creates_record(service, profile, today):
    session = _filled(service, today)
    evaluation_id = service.submit(session, profile, EvaluationStatus.COMPLETED)

    record = service.repository.get(evaluation_id).data
    assert record["status"] == "Concluído"
    assert record["financials"]["totals"]["totalFinal"] == "22.522,50"
    assert session.evaluation_id == evaluation_id
    assert session.evaluator_id == "user-1"


def test_load_keeps_stored_discount(service, profile, today):
    session = _filled(service, today)
    session.override_discount(Category.INSECT, 5000)
    evaluation_id = service.submit(session, profile, EvaluationStatus.DRAFT)

    loaded = service.load(evaluation_id, today)
    assert loaded.financials(Category.INSECT).discount_cents == 5000
    assert loaded.status == EvaluationStatus.IN_PROGRESS
    assert loaded.evaluator_id == "user-1"

    # the next checklist change recomputes
    loaded.update_checklist(Category.INSECT, traps_maintained=False)
    assert loaded.financials(Category.INSECT).discount_cents == 68250


def test_load_missing_raises(service):
    with pytest.raises(EvaluationNotFound):
        service.load("nope")


def test_draft_can_be_updated_by_creator(service, profile, today):
    session = _filled(service, today)
    evaluation_id = service.submit(session, profile, EvaluationStatus.DRAFT)

    session.update_general(epi_used=False)
    assert service.submit(session, profile, EvaluationStatus.COMPLETED) == evaluation_id

    record = service.repository.get(evaluation_id).data
    assert record["status"] == "Concluído"
    assert "createdAt" in record and "updatedAt" in record


def test_completed_is_locked_unless_reopened(service, profile, today):
    session = _filled(service, today)
    evaluation_id = service.submit(session, profile, EvaluationStatus.COMPLETED)

    with pytest.raises(EvaluationLocked):
        service.submit(session, profile, EvaluationStatus.COMPLETED)

    service.submit(session, profile, EvaluationStatus.DRAFT, evaluation_id=evaluation_id, reopen=True)
    assert service.repository.get(evaluation_id).data["status"] == "Em Andamento"


def test_only_creator_may_update(service, profile, other_profile, today):
    session = _filled(service, today)
    evaluation_id = service.submit(session, profile, EvaluationStatus.DRAFT)

    with pytest.raises(NotEvaluationOwner):
        service.submit(service.load(evaluation_id, today), other_profile, EvaluationStatus.DRAFT, reopen=True)


def test_delete_only_in_progress(service, profile, other_profile, today):
    draft_id = service.submit(_filled(service, today), profile, EvaluationStatus.DRAFT)
    done_id = service.submit(_filled(service, today), profile, EvaluationStatus.COMPLETED)

    with pytest.raises(EvaluationLocked):
        service.delete(done_id, profile)
    with pytest.raises(NotEvaluationOwner):
        service.delete(draft_id, other_profile)

    service.delete(draft_id, profile)
    with pytest.raises(EvaluationNotFound):
        service.repository.get(draft_id)


def test_listing_rows_and_filters(service, profile, other_profile, today):
    first = service.submit(_filled(service, today), profile, EvaluationStatus.COMPLETED)
    second = service.submit(_filled(service, today), other_profile, EvaluationStatus.DRAFT)
    # legacy record without status
    legacy = service.repository.create({"unit": "Depósito", "location": "Galpão 3", "score": 90})

    rows = service.list_rows()
    assert [r.id for r in rows] == [legacy, second, first]
    assert rows[0].status == "Em Andamento"
    assert rows[0].displayId == display_id(legacy) == f"#EV-{legacy[:6].upper()}"

    assert [r.id for r in service.list_rows(q="anexo")] == [second]
    assert [r.id for r in service.list_rows(q="galpão")] == [legacy]
    assert [r.id for r in service.list_rows(q=display_id(first).lower())] == [first]
    assert [r.id for r in service.list_rows(status="Concluído")] == [first]
    assert [r.id for r in service.list_rows(q="sede", status="Em Andamento")] == []


class FlakyFactory:
    """Session factory that starts failing once `broken` is set."""

    def __init__(self):
        engine = make_engine("sqlite://")
        init_db(engine)
        self._factory = make_session_factory(engine)
        self.broken = False

    def __call__(self):
        if self.broken:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return self._factory()


@pytest.fixture
def flaky():
    return FlakyFactory()


@pytest.fixture
def flaky_service(flaky, runner, clock):
    return EvaluationService(DocumentStore(flaky, clock=clock), runner=runner, clock=clock, score=100)


def test_failed_create_leaves_session_untouched(flaky, flaky_service, profile, today):
    session = _filled(flaky_service, today)
    before = session.state
    flaky.broken = True

    with pytest.raises(PersistenceError) as exc:
        flaky_service.submit(session, profile, EvaluationStatus.COMPLETED)
    assert exc.value.operation == "add"

    assert session.evaluation_id is None
    assert session.status is None
    assert session.state == before

    # retry once the store is back
    flaky.broken = False
    evaluation_id = flaky_service.submit(session, profile, EvaluationStatus.COMPLETED)
    assert flaky_service.repository.get(evaluation_id).data["status"] == "Concluído"


def test_failed_update_leaves_session_untouched(flaky, flaky_service, profile, today):
    session = _filled(flaky_service, today)
    evaluation_id = flaky_service.submit(session, profile, EvaluationStatus.DRAFT)
    session.update_general(epi_used=False)
    before = session.state
    flaky.broken = True

    with pytest.raises(PersistenceError):
        flaky_service.submit(session, profile, EvaluationStatus.COMPLETED)

    assert session.evaluation_id == evaluation_id
    assert session.status == EvaluationStatus.IN_PROGRESS
    assert session.state == before

    flaky.broken = False
    assert flaky_service.repository.get(evaluation_id).data["status"] == "Em Andamento"
