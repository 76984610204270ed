from datetime import date

from qualitrust.evaluation.dashboard import monthly_status, unit_completed_this_month
from qualitrust.evaluation.domain.models import Unit


TODAY = date(2025, 3, 15)


def _units(*names):
    return [Unit(id=n, name=n) for n in names]


def test_unit_completed_this_month():
    evaluations = [
        {"unit": "Sede", "date": "2025-03-02T10:00:00+00:00"},
        {"unit": "Anexo", "date": "2025-02-27T10:00:00+00:00"},
        {"unit": "Depósito", "date": "2024-03-10T10:00:00+00:00"},
    ]
    assert unit_completed_this_month("Sede", evaluations, TODAY)
    assert not unit_completed_this_month("Anexo", evaluations, TODAY)
    assert not unit_completed_this_month("Depósito", evaluations, TODAY)


def test_monthly_status_rate():
    evaluations = [
        {"unit": "Sede", "date": "2025-03-02T10:00:00+00:00"},
        {"unit": "Depósito", "date": "not a date"},
        {"unit": "Anexo"},
    ]
    status = monthly_status(_units("Sede", "Anexo", "Depósito"), evaluations, TODAY)

    assert (status.month, status.year) == (3, 2025)
    assert [(u.unit, u.completed) for u in status.units] == [("Sede", True), ("Anexo", False), ("Depósito", False)]
    assert status.complianceRate == 33.3


def test_monthly_status_without_units():
    status = monthly_status([], [{"unit": "Sede", "date": "2025-03-02"}], TODAY)
    assert status.complianceRate == 0.0
    assert status.units == []


def test_utc_z_suffix_dates_are_counted():
    evaluations = [
        {"unit": "Sede", "date": "2025-03-02T10:00:00.000Z"},
        {"unit": "Anexo", "date": "2025-02-28T23:59:59Z"},
    ]
    assert unit_completed_this_month("Sede", evaluations, TODAY)
    assert not unit_completed_this_month("Anexo", evaluations, TODAY)
