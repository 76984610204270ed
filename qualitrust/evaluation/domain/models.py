from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .money import round_half_up

D = Decimal


# -----------------------------
# Enumerations (category keys are the record field names; service
# types and statuses store their Portuguese labels)
# -----------------------------


class Category(str, Enum):
    INSECT = "disinsectization"
    RODENT = "deratization"
    TERMITE = "termite"


CATEGORIES: Tuple[Category, ...] = (Category.INSECT, Category.RODENT, Category.TERMITE)


class ServiceType(str, Enum):
    DISINSECTIZATION = "Desinsetização"
    DERATIZATION = "Desratização"
    TERMITE_CONTROL = "Controle de Cupins"


SERVICE_TYPE_BY_CATEGORY: Dict[Category, ServiceType] = {
    Category.INSECT: ServiceType.DISINSECTIZATION,
    Category.RODENT: ServiceType.DERATIZATION,
    Category.TERMITE: ServiceType.TERMITE_CONTROL,
}


class EvaluationStatus(str, Enum):
    COMPLETED = "Concluído"
    IN_PROGRESS = "Em Andamento"
    PENDING_REVIEW = "Revisão Pendente"
    ACTION_REQUIRED = "Ação Necessária"

    # drafts are stored as "in progress"
    DRAFT = "Em Andamento"


MONTHS: Tuple[str, ...] = (
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)


def month_name(month: int) -> str:
    """1..12 -> localized name."""
    if not 1 <= int(month) <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    return MONTHS[int(month) - 1]


def month_from_name(name: Optional[str]) -> Optional[int]:
    """Exact match against MONTHS; None when unknown."""
    if not name:
        return None
    try:
        return MONTHS.index(name) + 1
    except ValueError:
        return None


# -----------------------------
# Service selection + financials
# -----------------------------


@dataclass(frozen=True)
class ServiceSelection:
    insect: bool = False
    rodent: bool = False
    termite: bool = False

    def is_selected(self, category: Category) -> bool:
        return {
            Category.INSECT: self.insect,
            Category.RODENT: self.rodent,
            Category.TERMITE: self.termite,
        }[category]

    def selected(self) -> List[Category]:
        return [c for c in CATEGORIES if self.is_selected(c)]

    def primary_service_type(self) -> ServiceType:
        # termite > rodent > insect; insect is also the fallback for an empty selection
        if self.termite:
            return ServiceType.TERMITE_CONTROL
        if self.rodent:
            return ServiceType.DERATIZATION
        return ServiceType.DISINSECTIZATION


@dataclass(frozen=True)
class ServiceFinancials:
    """
    area/price come from the tariff resolver (read-only in the form);
    discount_cents is derived, but the evaluator may override it.
    """

    area: D = D("0")
    unit_price_cents: int = 0
    discount_cents: int = 0

    @property
    def gross_cents(self) -> int:
        return round_half_up(self.area * D(self.unit_price_cents))


@dataclass(frozen=True)
class Baseline:
    """Resolved (area, unit price) per category."""

    area: D = D("0")
    prices: Dict[Category, int] = field(default_factory=dict)

    def price(self, category: Category) -> int:
        return int(self.prices.get(category, 0))


# -----------------------------
# Checklists (compliant defaults => zero discount)
# -----------------------------


@dataclass(frozen=True)
class GeneralChecklist:
    employee_identified: bool = True
    epi_used: bool = True
    # NB: True is the penalized answer here
    damage_recovered: bool = False
    proof_delivered: bool = True

    def failed_flags(self) -> List[str]:
        failed = []
        if not self.employee_identified:
            failed.append("employee_identified")
        if not self.epi_used:
            failed.append("epi_used")
        if self.damage_recovered:
            failed.append("damage_recovered")
        if not self.proof_delivered:
            failed.append("proof_delivered")
        return failed


@dataclass(frozen=True)
class ServiceChecklist:
    """Shared shape for insect and rodent control; one instance per category."""

    executed_area: D = D("0")
    followed_schedule: bool = True
    delay_days: int = 0
    traps_maintained: bool = True
    had_extra_call: bool = False
    extra_call_on_time: bool = True
    extra_call_effective: bool = True

    def __post_init__(self) -> None:
        if int(self.delay_days) < 0:
            raise ValueError("delay_days must be >= 0")

    @property
    def effective_delay_days(self) -> int:
        # delay only counts when the schedule was not followed
        return 0 if self.followed_schedule else int(self.delay_days)


@dataclass(frozen=True)
class TermiteChecklist:
    chemical_barrier_applied: bool = True


# -----------------------------
# Reference data
# -----------------------------


@dataclass(frozen=True)
class Tariff:
    label: str
    unit_price_cents: int


@dataclass(frozen=True)
class ContactInfo:
    name: str = ""
    email: str = ""
    ramal: str = ""


@dataclass(frozen=True)
class Unit:
    id: Optional[str]
    name: str
    floor_area: D = D("0")
    address: str = ""
    titular: ContactInfo = field(default_factory=ContactInfo)
    substituto: ContactInfo = field(default_factory=ContactInfo)
