from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import qualitrust.evaluation.rule_types  # noqa: F401 (register all rules)

from qualitrust.db import init_db, make_engine, make_session_factory
from qualitrust.evaluation.domain.models import Category, ServiceFinancials, Tariff, Unit
from qualitrust.evaluation.engine.policy_loader import DEFAULT_POLICY_PATH, load_policy
from qualitrust.evaluation.engine.rule_runner import DiscountRunner
from qualitrust.evaluation.service import EvaluationService
from qualitrust.main import create_app
from qualitrust.store.documents import DocumentStore
from qualitrust.store.profiles import EvaluatorProfile, ProfileStore


class TickingClock:
    """Every call is one second later, so created_at ordering is deterministic."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def today(fixed_now) -> date:
    return fixed_now.date()


@pytest.fixture
def clock(fixed_now):
    return TickingClock(fixed_now)


@pytest.fixture
def policy():
    # the packaged YAML (also validates schema + executionOrder)
    return load_policy(DEFAULT_POLICY_PATH)


@pytest.fixture
def runner(policy):
    return DiscountRunner(policy)


@pytest.fixture
def store(clock):
    engine = make_engine("sqlite://")
    init_db(engine)
    return DocumentStore(make_session_factory(engine), clock=clock)


@pytest.fixture
def profile():
    return EvaluatorProfile(uid="user-1", name="Ana Souza", unit="Sede Central", role="Titular", email="ana@example.org")


@pytest.fixture
def other_profile():
    return EvaluatorProfile(uid="user-2", name="Bruno Lima", unit="Anexo Norte", role="Substituto")


@pytest.fixture
def profiles(store, profile, other_profile):
    ps = ProfileStore(store)
    ps.save(profile)
    ps.save(other_profile)
    return ps


@pytest.fixture
def service(store, runner, clock):
    return EvaluationService(store, runner=runner, clock=clock, score=100)


@pytest.fixture
def sample_units():
    return [
        Unit(id="u1", name="Sede Central", floor_area=Decimal("500")),
        Unit(id="u2", name="Anexo Norte", floor_area=Decimal("1200.50")),
    ]


@pytest.fixture
def sample_tariffs():
    return [
        Tariff(label="Controle Geral de Insetos", unit_price_cents=4550),
        Tariff(label="Mitigação de Roedores", unit_price_cents=12000),
        Tariff(label="Serviço de Desinfecção", unit_price_cents=8575),
    ]


@pytest.fixture
def baseline_financials():
    # 500 m2 at the default contract tariffs
    return {
        Category.INSECT: ServiceFinancials(area=Decimal("500"), unit_price_cents=4550),
        Category.RODENT: ServiceFinancials(area=Decimal("500"), unit_price_cents=12000),
        Category.TERMITE: ServiceFinancials(area=Decimal("500"), unit_price_cents=8575),
    }


@pytest.fixture
def app(runner, clock):
    return create_app("sqlite://", runner=runner, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def api_profiles(app, profile, other_profile):
    ps = ProfileStore(app.state.store)
    ps.save(profile)
    ps.save(other_profile)
    return ps
