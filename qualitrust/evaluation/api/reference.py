from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Response

from ..dashboard import monthly_status
from ..domain.models import Unit
from ..records.builder import format_area
from ..reference import ContractSettings, ReferenceData
from ..schemas.evaluation_v1 import ContactV1, ContractSettingsV1, MonthlyStatusV1, UnitInputV1, UnitV1
from ..service import EvaluationService
from .dependencies import get_reference, get_service, get_today

router = APIRouter(prefix="/api", tags=["reference"])


def _unit_out(unit: Unit) -> UnitV1:
    return UnitV1(
        id=unit.id or "",
        name=unit.name,
        squareMeters=format_area(unit.floor_area),
        address=unit.address,
        titular=ContactV1(**asdict(unit.titular)),
        substituto=ContactV1(**asdict(unit.substituto)),
    )


# ----------------------------
# Settings
# ----------------------------
@router.get("/settings", response_model=ContractSettingsV1)
def get_contract_settings(reference: ReferenceData = Depends(get_reference)) -> ContractSettingsV1:
    return ContractSettingsV1(**reference.load_settings().to_document())


@router.put("/settings", response_model=ContractSettingsV1)
def put_contract_settings(
    payload: ContractSettingsV1,
    reference: ReferenceData = Depends(get_reference),
) -> ContractSettingsV1:
    settings = ContractSettings.from_document(payload.model_dump())
    reference.save_settings(settings)
    return ContractSettingsV1(**reference.load_settings().to_document())


# ----------------------------
# Units
# ----------------------------
@router.get("/units", response_model=List[UnitV1])
def list_units(reference: ReferenceData = Depends(get_reference)) -> List[UnitV1]:
    return [_unit_out(u) for u in reference.list_units()]


@router.post("/units", response_model=UnitV1, status_code=201)
def create_unit(payload: UnitInputV1, reference: ReferenceData = Depends(get_reference)) -> UnitV1:
    unit_id = reference.save_unit(payload.model_dump())
    return _unit_out(next(u for u in reference.list_units() if u.id == unit_id))


@router.put("/units/{unit_id}", response_model=UnitV1)
def update_unit(
    unit_id: str,
    payload: UnitInputV1,
    reference: ReferenceData = Depends(get_reference),
) -> UnitV1:
    reference.save_unit(payload.model_dump(), unit_id=unit_id)
    return _unit_out(next(u for u in reference.list_units() if u.id == unit_id))


@router.delete("/units/{unit_id}", status_code=204)
def delete_unit(unit_id: str, reference: ReferenceData = Depends(get_reference)) -> Response:
    reference.delete_unit(unit_id)
    return Response(status_code=204)


# ----------------------------
# Dashboard
# ----------------------------
@router.get("/dashboard/monthly-status", response_model=MonthlyStatusV1)
def get_monthly_status(
    today: date = Depends(get_today),
    reference: ReferenceData = Depends(get_reference),
    service: EvaluationService = Depends(get_service),
) -> MonthlyStatusV1:
    evaluations = [d.data for d in service.repository.list()]
    status = monthly_status(reference.list_units(), evaluations, today)
    return MonthlyStatusV1(**asdict(status))
