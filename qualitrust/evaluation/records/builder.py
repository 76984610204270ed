from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from qualitrust.core.logging_config import logger
from qualitrust.errors import ValidationFailed
from qualitrust.store.profiles import EvaluatorProfile

from ..calculators.financials import FinancialSummary, aggregate
from ..domain.models import (
    CATEGORIES,
    Category,
    EvaluationStatus,
    GeneralChecklist,
    ServiceChecklist,
    ServiceFinancials,
    ServiceSelection,
    TermiteChecklist,
    month_from_name,
    month_name,
)
from ..domain.money import format_cents, format_decimal_comma, parse_decimal_comma, parse_money_cents
from ..domain.state import EvaluationState

D = Decimal

EVALUATIONS = "evaluations"


def format_area(area: D) -> str:
    exp = D(area).as_tuple().exponent
    places = max(2, -exp) if isinstance(exp, int) else 2
    return format_decimal_comma(D(area), places)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    return bool(value)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# -----------------------------
# Build (state -> stored record)
# -----------------------------


def _financial_details(financials: Mapping[Category, ServiceFinancials]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for category in CATEGORIES:
        fin = financials.get(category) or ServiceFinancials()
        out[category.value] = {
            "metrage": format_area(fin.area),
            "unitPrice": format_cents(fin.unit_price_cents),
            "discount": format_cents(fin.discount_cents),
        }
    return out


def _financial_totals(summary: FinancialSummary) -> Dict[str, Any]:
    return {
        "totalDiscount": format_cents(summary.total_discount_cents),
        "totalFinal": format_cents(summary.total_final_cents),
        "perCategory": {
            c.value: {
                "value": format_cents(t.value_cents),
                "discount": format_cents(t.discount_cents),
                "final": format_cents(t.final_cents),
            }
            for c, t in summary.per_category.items()
        },
    }


def _service_checklist_dict(c: ServiceChecklist) -> Dict[str, Any]:
    return {
        "executedMetrage": format_area(c.executed_area),
        "followedSchedule": c.followed_schedule,
        "delayDays": int(c.delay_days),
        "lightTrapsMaintained": c.traps_maintained,
        "extraCall": c.had_extra_call,
        "extraCallOnTime": c.extra_call_on_time,
        "extraCallEffective": c.extra_call_effective,
    }


def build_record(
    state: EvaluationState,
    profile: EvaluatorProfile,
    status: EvaluationStatus,
    *,
    now: Optional[datetime] = None,
    score: int = 100,
    is_update: bool = False,
    summary: Optional[FinancialSummary] = None,
) -> Dict[str, Any]:
    """
    Assemble the persisted evaluation document. Pure: no I/O, state untouched.
    `status` is the caller's choice (draft vs completed), never inferred.
    """
    status = EvaluationStatus(status)
    errors: Dict[str, str] = {}
    if not profile.name.strip():
        errors["evaluatorName"] = "Evaluator name is required."
    if not profile.unit.strip():
        errors["unit"] = "Evaluator unit is required."
    if status == EvaluationStatus.COMPLETED and not state.selection.selected():
        errors["servicesSelected"] = "Select at least one service."
    if errors:
        raise ValidationFailed(errors)

    now = now or datetime.now(timezone.utc)
    summary = summary or aggregate(state.selection, state.financials)
    sel = state.selection
    g = state.general

    record: Dict[str, Any] = {
        "evaluatorId": profile.uid,
        "evaluatorName": profile.name,
        "evaluatorUnit": profile.unit,
        "evaluatorRole": profile.role,
        "referenceMonth": month_name(state.reference_month),
        "referenceYear": int(state.reference_year),
        "servicesSelected": {
            Category.INSECT.value: sel.insect,
            Category.RODENT.value: sel.rodent,
            Category.TERMITE.value: sel.termite,
        },
        "financials": {
            "details": _financial_details(state.financials),
            "totals": _financial_totals(summary),
        },
        "generalEvaluation": {
            "employeeIdentified": g.employee_identified,
            "epiUsed": g.epi_used,
            "damageRecovered": g.damage_recovered,
            "proofDelivered": g.proof_delivered,
        },
        # only the blocks of selected services are kept
        "specificEvaluation": {
            Category.INSECT.value: _service_checklist_dict(state.insect) if sel.insect else None,
            Category.RODENT.value: _service_checklist_dict(state.rodent) if sel.rodent else None,
            Category.TERMITE.value: (
                {"chemicalBarrier": state.termite.chemical_barrier_applied} if sel.termite else None
            ),
        },
        "unit": profile.unit,
        "location": profile.unit,
        "type": sel.primary_service_type().value,
        "score": int(score),
        "status": status.value,
        "date": now.isoformat(),
        ("updatedAt" if is_update else "createdAt"): now.isoformat(),
    }
    return record


# -----------------------------
# Hydrate (stored record -> state)
# -----------------------------


@dataclass(frozen=True)
class HydratedEvaluation:
    evaluation_id: str
    state: EvaluationState
    status: EvaluationStatus
    evaluator_id: Optional[str] = None
    evaluator_name: str = ""
    unit: str = ""
    record: Dict[str, Any] = field(default_factory=dict)


def _parse_status(value: Any) -> EvaluationStatus:
    try:
        return EvaluationStatus(value)
    except ValueError:
        return EvaluationStatus.IN_PROGRESS


def _hydrate_service_checklist(d: Mapping[str, Any], default: ServiceChecklist) -> ServiceChecklist:
    return ServiceChecklist(
        executed_area=parse_decimal_comma(d.get("executedMetrage", default.executed_area)),
        followed_schedule=_as_bool(d.get("followedSchedule"), default.followed_schedule),
        delay_days=max(0, _as_int(d.get("delayDays"), default.delay_days)),
        traps_maintained=_as_bool(d.get("lightTrapsMaintained"), default.traps_maintained),
        had_extra_call=_as_bool(d.get("extraCall"), default.had_extra_call),
        extra_call_on_time=_as_bool(d.get("extraCallOnTime"), default.extra_call_on_time),
        extra_call_effective=_as_bool(d.get("extraCallEffective"), default.extra_call_effective),
    )


def hydrate_state(record: Mapping[str, Any], defaults: EvaluationState) -> EvaluationState:
    """
    Rebuild form state from a stored record. Missing blocks keep `defaults`;
    an unknown month name keeps the default month.
    """
    state = defaults.copy()

    month = month_from_name(record.get("referenceMonth"))
    if month is not None:
        state.reference_month = month
    elif record.get("referenceMonth"):
        logger.bind(reference_month=record.get("referenceMonth")).warning("reference_month_unmatched")
    if record.get("referenceYear") is not None:
        state.reference_year = _as_int(record.get("referenceYear"), state.reference_year)

    services = record.get("servicesSelected") or {}
    if services:
        state.selection = ServiceSelection(
            insect=bool(services.get(Category.INSECT.value)),
            rodent=bool(services.get(Category.RODENT.value)),
            termite=bool(services.get(Category.TERMITE.value)),
        )

    details = (record.get("financials") or {}).get("details") or {}
    for category in CATEGORIES:
        row = details.get(category.value)
        if not row:
            continue
        state.financials[category] = ServiceFinancials(
            area=parse_decimal_comma(row.get("metrage")),
            unit_price_cents=parse_money_cents(row.get("unitPrice")),
            discount_cents=parse_money_cents(row.get("discount")),
        )

    general = record.get("generalEvaluation") or {}
    if general:
        dg = defaults.general
        state.general = GeneralChecklist(
            employee_identified=_as_bool(general.get("employeeIdentified"), dg.employee_identified),
            epi_used=_as_bool(general.get("epiUsed"), dg.epi_used),
            damage_recovered=_as_bool(general.get("damageRecovered"), dg.damage_recovered),
            proof_delivered=_as_bool(general.get("proofDelivered"), dg.proof_delivered),
        )

    specific = record.get("specificEvaluation") or {}
    if specific.get(Category.INSECT.value):
        state.insect = _hydrate_service_checklist(specific[Category.INSECT.value], defaults.insect)
    if specific.get(Category.RODENT.value):
        state.rodent = _hydrate_service_checklist(specific[Category.RODENT.value], defaults.rodent)
    if specific.get(Category.TERMITE.value):
        t = specific[Category.TERMITE.value]
        state.termite = TermiteChecklist(
            chemical_barrier_applied=_as_bool(t.get("chemicalBarrier"), defaults.termite.chemical_barrier_applied)
        )

    return state


def hydrate_record(evaluation_id: str, record: Mapping[str, Any], defaults: EvaluationState) -> HydratedEvaluation:
    return HydratedEvaluation(
        evaluation_id=evaluation_id,
        state=hydrate_state(record, defaults),
        status=_parse_status(record.get("status")),
        evaluator_id=record.get("evaluatorId"),
        evaluator_name=str(record.get("evaluatorName") or ""),
        unit=str(record.get("unit") or ""),
        record=dict(record),
    )
