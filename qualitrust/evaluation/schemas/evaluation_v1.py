# qualitrust/evaluation/schemas/evaluation_v1.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


# ----------------------------
# Input (money and area are decimal-comma strings, e.g. "1.200,50")
# ----------------------------


class ServicesSelectedV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    disinsectization: bool = False
    deratization: bool = False
    termite: bool = False


class BaselineV1(BaseModel):
    """Explicit (area, unit prices); used instead of resolving the unit by name."""

    model_config = ConfigDict(extra="forbid")

    metrage: str = "0"
    unitPrices: Dict[Literal["disinsectization", "deratization", "termite"], str] = Field(default_factory=dict)


class GeneralEvaluationV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    employeeIdentified: bool = True
    epiUsed: bool = True
    damageRecovered: bool = False
    proofDelivered: bool = True


class ServiceChecklistV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    executedMetrage: Optional[str] = None
    followedSchedule: bool = True
    delayDays: int = Field(default=0, ge=0)
    lightTrapsMaintained: bool = True
    extraCall: bool = False
    extraCallOnTime: bool = True
    extraCallEffective: bool = True


class TermiteChecklistV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chemicalBarrier: bool = True


class SpecificEvaluationV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    disinsectization: Optional[ServiceChecklistV1] = None
    deratization: Optional[ServiceChecklistV1] = None
    termite: Optional[TermiteChecklistV1] = None


class EvaluationInputV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    referenceMonth: Optional[str] = None  # "Janeiro".."Dezembro"
    referenceYear: Optional[int] = None
    unit: Optional[str] = None
    baseline: Optional[BaselineV1] = None
    servicesSelected: ServicesSelectedV1 = Field(default_factory=ServicesSelectedV1)
    generalEvaluation: GeneralEvaluationV1 = Field(default_factory=GeneralEvaluationV1)
    specificEvaluation: SpecificEvaluationV1 = Field(default_factory=SpecificEvaluationV1)
    # manual discounts, applied after the computed ones
    discountOverrides: Dict[Literal["disinsectization", "deratization", "termite"], str] = Field(
        default_factory=dict
    )


class EvaluationSubmitV1(EvaluationInputV1):
    status: Literal["Draft", "Completed"] = "Draft"


# ----------------------------
# Output
# ----------------------------


class CategoryResultV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str
    selected: bool
    metrage: str
    unitPrice: str
    value: str
    pct: str
    cappedPct: str
    discount: str
    steps: List[str] = Field(default_factory=list)
    appliedRules: List[str] = Field(default_factory=list)
    # rule id -> {"pct": "1", ...rule details}
    contributions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class TotalsV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    totalValue: str
    totalDiscount: str
    totalFinal: str
    negativeFinals: List[str] = Field(default_factory=list)


class CalculateOutputV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: Literal["v1"] = "v1"
    policyVersion: str
    type: str
    categories: List[CategoryResultV1]
    totals: TotalsV1
    warnings: List[Dict[str, Any]] = Field(default_factory=list)
    # printable view (bullets + notices header)
    printable: List[str] = Field(default_factory=list)


class SubmitOutputV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    displayId: str
    status: str
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


class EvaluationDetailV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    displayId: str
    status: str
    evaluatorId: Optional[str] = None
    state: EvaluationInputV1
    # stored discount per category, read-only
    discounts: Dict[str, str] = Field(default_factory=dict)
    record: Dict[str, Any]


class ListingRowV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    displayId: str
    date: str
    unit: str
    location: str
    type: str
    score: int
    status: str


# ----------------------------
# Reference data
# ----------------------------


class TariffV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str
    value: str


class ContractSettingsV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tariffs: List[TariffV1] = Field(default_factory=list)
    contractId: str = ""
    contractValue: str = ""
    contractValidity: str = ""
    mainManager: str = ""
    substituteManager: str = ""
    referenceProcess: str = ""
    notificationPeriods: List[int] = Field(default_factory=lambda: [30, 60, 90])
    emailRecipients: List[str] = Field(default_factory=list)
    notificationFrequency: Literal["once", "weekly"] = "once"


class ContactV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = ""
    email: str = ""
    ramal: str = ""


class UnitInputV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: constr(strip_whitespace=True, min_length=1)  # type: ignore
    squareMeters: str
    address: str = ""
    titular: ContactV1 = Field(default_factory=ContactV1)
    substituto: ContactV1 = Field(default_factory=ContactV1)


class UnitV1(UnitInputV1):
    id: str


class UnitMonthStatusV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    unit: str
    completed: bool


class MonthlyStatusV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    month: int
    year: int
    units: List[UnitMonthStatusV1]
    complianceRate: float
