from __future__ import annotations

import time
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from qualitrust.core.logging_config import logger
from qualitrust.errors import ValidationFailed
from qualitrust.store.profiles import EvaluatorProfile

from ..domain.models import (
    CATEGORIES,
    SERVICE_TYPE_BY_CATEGORY,
    Baseline,
    Category,
    EvaluationStatus,
    month_from_name,
    month_name,
)
from ..domain.money import format_cents, parse_decimal_comma, parse_money_cents
from ..engine.rule_runner import DiscountRunner
from ..engine.session import EvaluationSession
from ..explain.formatter import format_notices_header, format_steps_bullets
from ..records.builder import format_area
from ..reference import ReferenceData, ReferenceSnapshot
from ..schemas.evaluation_v1 import (
    CalculateOutputV1,
    CategoryResultV1,
    EvaluationDetailV1,
    EvaluationInputV1,
    EvaluationSubmitV1,
    GeneralEvaluationV1,
    ListingRowV1,
    ServiceChecklistV1,
    ServicesSelectedV1,
    SpecificEvaluationV1,
    SubmitOutputV1,
    TermiteChecklistV1,
    TotalsV1,
)
from ..service import EvaluationService, display_id
from .dependencies import current_profile, get_reference, get_service, get_today

router = APIRouter(prefix="/api/evaluations", tags=["evaluations"])

SUBMIT_STATUS = {
    "Draft": EvaluationStatus.DRAFT,
    "Completed": EvaluationStatus.COMPLETED,
}


# ----------------------------
# Helpers
# ----------------------------
def _log_obs(
    *,
    request: Request,
    endpoint: str,
    duration_ms: float,
    result: str,
    event: str,
    status_code: Optional[int] = None,
    **extra: Any,
) -> None:
    request_id = request.headers.get("X-Request-ID", "unknown")
    bound = logger.bind(
        request_id=request_id,
        endpoint=endpoint,
        duration_ms=duration_ms,
        result=result,
        **extra,
    )
    if status_code is not None:
        bound = bound.bind(status_code=status_code)
    bound.info(event)


def _ms_since(t0: float) -> float:
    return round((time.time() - t0) * 1000, 2)


def _pct_text(pct: Decimal) -> str:
    return format(pct.normalize(), "f")


def submission_unit(payload: EvaluationInputV1, profile: EvaluatorProfile) -> str:
    """Stored evaluations are always priced from the evaluator's own unit."""
    errors: Dict[str, str] = {}
    if payload.unit is not None and payload.unit != profile.unit:
        errors["unit"] = f"Evaluations are recorded for the evaluator's unit ({profile.unit})."
    if payload.baseline is not None:
        errors["baseline"] = "Baseline is resolved from the evaluator's unit."
    if errors:
        raise ValidationFailed(errors)
    return profile.unit


def apply_input(
    session: EvaluationSession,
    payload: EvaluationInputV1,
    snapshot: ReferenceSnapshot,
    *,
    unit: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Replays a request body onto the session; returns resolver warnings.

    An explicit baseline wins over unit resolution. `unit` defaults to the
    body's own unit name.
    """
    warnings: List[Dict[str, Any]] = []
    unit = unit if unit is not None else payload.unit

    if payload.referenceMonth is not None:
        month = month_from_name(payload.referenceMonth)
        if month is None:
            raise ValidationFailed({"referenceMonth": f"Unknown month: {payload.referenceMonth}"})
        session.set_reference_month(month, payload.referenceYear)
    elif payload.referenceYear is not None:
        session.set_reference_month(session.state.reference_month, payload.referenceYear)

    sel = payload.servicesSelected
    session.select_services(insect=sel.disinsectization, rodent=sel.deratization, termite=sel.termite)

    if payload.baseline is not None:
        session.apply_baseline(
            Baseline(
                area=parse_decimal_comma(payload.baseline.metrage),
                prices={Category(k): parse_money_cents(v) for k, v in payload.baseline.unitPrices.items()},
            )
        )
    elif unit:
        resolution = snapshot.resolve(unit)
        warnings.extend(resolution.warnings)
        session.apply_baseline(resolution)

    g = payload.generalEvaluation
    session.update_general(
        employee_identified=g.employeeIdentified,
        epi_used=g.epiUsed,
        damage_recovered=g.damageRecovered,
        proof_delivered=g.proofDelivered,
    )

    spec = payload.specificEvaluation
    for category, checklist in ((Category.INSECT, spec.disinsectization), (Category.RODENT, spec.deratization)):
        if checklist is None:
            continue
        changes: Dict[str, Any] = {
            "followed_schedule": checklist.followedSchedule,
            "delay_days": checklist.delayDays,
            "traps_maintained": checklist.lightTrapsMaintained,
            "had_extra_call": checklist.extraCall,
            "extra_call_on_time": checklist.extraCallOnTime,
            "extra_call_effective": checklist.extraCallEffective,
        }
        if checklist.executedMetrage is not None:
            changes["executed_area"] = parse_decimal_comma(checklist.executedMetrage)
        session.update_checklist(category, **changes)

    if spec.termite is not None:
        session.update_checklist(Category.TERMITE, chemical_barrier_applied=spec.termite.chemicalBarrier)

    for key, value in payload.discountOverrides.items():
        session.override_discount(Category(key), parse_money_cents(value))

    return warnings


def calculation_output(session: EvaluationSession, warnings: List[Dict[str, Any]]) -> CalculateOutputV1:
    outcome = session.preview()
    state = session.state
    summary = session.totals()
    warnings = list(warnings) + [
        w for w in outcome.warnings if state.selection.is_selected(Category(w["meta"]["category"]))
    ]
    for category in summary.negative_finals():
        warnings.append(
            {
                "code": "FINAL_VALUE_NEGATIVE",
                "message": f"Valor final negativo em {SERVICE_TYPE_BY_CATEGORY[category].value}",
                "meta": {"category": category.value},
            }
        )

    rows: List[CategoryResultV1] = []
    printable: List[str] = []
    for category in CATEGORIES:
        fin = state.financials[category]
        computed = outcome[category]
        selected = state.selection.is_selected(category)
        rows.append(
            CategoryResultV1(
                category=category.value,
                selected=selected,
                metrage=format_area(fin.area),
                unitPrice=format_cents(fin.unit_price_cents),
                value=format_cents(fin.gross_cents),
                pct=_pct_text(computed.pct),
                cappedPct=_pct_text(computed.capped_pct),
                discount=format_cents(fin.discount_cents),
                steps=computed.steps,
                appliedRules=computed.applied_rules,
                contributions={
                    rule_id: {"pct": _pct_text(pct), **computed.rule_meta.get(rule_id, {})}
                    for rule_id, pct in computed.contributions.items()
                },
            )
        )
        if selected and computed.steps:
            printable.append(SERVICE_TYPE_BY_CATEGORY[category].value)
            printable.extend(format_steps_bullets(computed.steps))

    notices = format_notices_header("Avisos", warnings)
    if notices:
        printable = notices.split("\n") + printable

    return CalculateOutputV1(
        policyVersion=outcome.policy_version,
        type=state.selection.primary_service_type().value,
        categories=rows,
        totals=TotalsV1(
            totalValue=format_cents(summary.total_value_cents),
            totalDiscount=format_cents(summary.total_discount_cents),
            totalFinal=format_cents(summary.total_final_cents),
            negativeFinals=[c.value for c in summary.negative_finals()],
        ),
        warnings=warnings,
        printable=printable,
    )


def manual_overrides(session: EvaluationSession) -> Dict[str, str]:
    """Stored discounts that differ from what the checklists compute."""
    computed = session.preview().discounts()
    s = session.state
    return {
        c.value: format_cents(s.financials[c].discount_cents)
        for c in CATEGORIES
        if s.financials[c].discount_cents != computed[c]
    }


def session_to_input(session: EvaluationSession, unit: Optional[str]) -> EvaluationInputV1:
    """Editable state; the baseline is re-resolved from the unit on submit."""
    s = session.state

    def service(category: Category) -> Optional[ServiceChecklistV1]:
        if not s.selection.is_selected(category):
            return None
        c = s.service_checklist(category)
        return ServiceChecklistV1(
            executedMetrage=format_area(c.executed_area),
            followedSchedule=c.followed_schedule,
            delayDays=c.delay_days,
            lightTrapsMaintained=c.traps_maintained,
            extraCall=c.had_extra_call,
            extraCallOnTime=c.extra_call_on_time,
            extraCallEffective=c.extra_call_effective,
        )

    return EvaluationInputV1(
        referenceMonth=month_name(s.reference_month),
        referenceYear=s.reference_year,
        unit=unit or None,
        servicesSelected=ServicesSelectedV1(
            disinsectization=s.selection.insect,
            deratization=s.selection.rodent,
            termite=s.selection.termite,
        ),
        generalEvaluation=GeneralEvaluationV1(
            employeeIdentified=s.general.employee_identified,
            epiUsed=s.general.epi_used,
            damageRecovered=s.general.damage_recovered,
            proofDelivered=s.general.proof_delivered,
        ),
        specificEvaluation=SpecificEvaluationV1(
            disinsectization=service(Category.INSECT),
            deratization=service(Category.RODENT),
            termite=(
                TermiteChecklistV1(chemicalBarrier=s.termite.chemical_barrier_applied)
                if s.selection.termite
                else None
            ),
        ),
        discountOverrides=manual_overrides(session),
    )


def _runner(request: Request) -> Optional[DiscountRunner]:
    return request.app.state.runner


# ----------------------------
# 1) Calculate (stateless preview)
# ----------------------------
@router.post("/calculate", response_model=CalculateOutputV1)
def calculate_evaluation(
    payload: EvaluationInputV1,
    request: Request,
    today: date = Depends(get_today),
    reference: ReferenceData = Depends(get_reference),
) -> CalculateOutputV1:
    t0 = time.time()

    session = EvaluationSession.new(today, runner=_runner(request))
    warnings = apply_input(session, payload, reference.snapshot())
    out = calculation_output(session, warnings)

    _log_obs(
        request=request,
        endpoint="/api/evaluations/calculate",
        duration_ms=_ms_since(t0),
        result="warning" if out.warnings else "ok",
        event="evaluation_calculate",
        status_code=200,
        unit=payload.unit,
    )
    return out


# ----------------------------
# 2) CRUD
# ----------------------------
@router.post("", response_model=SubmitOutputV1, status_code=201)
def create_evaluation(
    payload: EvaluationSubmitV1,
    request: Request,
    today: date = Depends(get_today),
    profile: EvaluatorProfile = Depends(current_profile),
    reference: ReferenceData = Depends(get_reference),
    service: EvaluationService = Depends(get_service),
) -> SubmitOutputV1:
    t0 = time.time()

    session = service.new_session(today)
    unit = submission_unit(payload, profile)
    warnings = apply_input(session, payload, reference.snapshot(), unit=unit)
    status = SUBMIT_STATUS[payload.status]
    evaluation_id = service.submit(session, profile, status)

    _log_obs(
        request=request,
        endpoint="/api/evaluations",
        duration_ms=_ms_since(t0),
        result="ok",
        event="evaluation_submit",
        status_code=201,
        evaluation_id=evaluation_id,
    )
    return SubmitOutputV1(
        id=evaluation_id, displayId=display_id(evaluation_id), status=status.value, warnings=warnings
    )


@router.get("", response_model=List[ListingRowV1])
def list_evaluations(
    q: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    service: EvaluationService = Depends(get_service),
) -> List[ListingRowV1]:
    return [ListingRowV1(**vars(row)) for row in service.list_rows(q=q, status=status)]


@router.get("/{evaluation_id}", response_model=EvaluationDetailV1)
def get_evaluation(
    evaluation_id: str,
    today: date = Depends(get_today),
    service: EvaluationService = Depends(get_service),
) -> EvaluationDetailV1:
    session = service.load(evaluation_id, today)
    record = service.repository.get(evaluation_id).data
    return EvaluationDetailV1(
        id=evaluation_id,
        displayId=display_id(evaluation_id),
        status=session.status.value,
        evaluatorId=session.evaluator_id,
        state=session_to_input(session, record.get("unit")),
        discounts={c.value: format_cents(session.financials(c).discount_cents) for c in CATEGORIES},
        record=record,
    )


@router.put("/{evaluation_id}", response_model=SubmitOutputV1)
def update_evaluation(
    evaluation_id: str,
    payload: EvaluationSubmitV1,
    request: Request,
    reopen: bool = Query(default=False),
    today: date = Depends(get_today),
    profile: EvaluatorProfile = Depends(current_profile),
    reference: ReferenceData = Depends(get_reference),
    service: EvaluationService = Depends(get_service),
) -> SubmitOutputV1:
    t0 = time.time()

    service.check_can_update(evaluation_id, profile, reopen)
    session = service.load(evaluation_id, today)
    unit = submission_unit(payload, profile)
    warnings = apply_input(session, payload, reference.snapshot(), unit=unit)
    status = SUBMIT_STATUS[payload.status]
    service.submit(session, profile, status, evaluation_id=evaluation_id, reopen=reopen)

    _log_obs(
        request=request,
        endpoint="/api/evaluations/{id}",
        duration_ms=_ms_since(t0),
        result="ok",
        event="evaluation_update",
        status_code=200,
        evaluation_id=evaluation_id,
        reopen=reopen,
    )
    return SubmitOutputV1(
        id=evaluation_id, displayId=display_id(evaluation_id), status=status.value, warnings=warnings
    )


@router.delete("/{evaluation_id}", status_code=204)
def delete_evaluation(
    evaluation_id: str,
    profile: EvaluatorProfile = Depends(current_profile),
    service: EvaluationService = Depends(get_service),
) -> Response:
    service.delete(evaluation_id, profile)
    return Response(status_code=204)
