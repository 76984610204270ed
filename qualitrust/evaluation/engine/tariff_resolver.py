from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from qualitrust.core.logging_config import logger

from ..domain.models import CATEGORIES, Baseline, Category, Tariff, Unit

D = Decimal

# Matched as substrings of the normalized (lowercase, accent-free) label.
# Checked in category order; the first category that matches wins for a label.
CATEGORY_KEYWORDS: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    (Category.INSECT, ("insetos", "desinsetizacao")),
    (Category.RODENT, ("roedores", "desratizacao")),
    (Category.TERMITE, ("cupim", "descupinizacao", "desinfeccao")),
)


def normalize_label(label: Optional[str]) -> str:
    decomposed = unicodedata.normalize("NFKD", str(label or ""))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def classify_tariff_label(label: Optional[str]) -> Optional[Category]:
    text = normalize_label(label)
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return None


def find_unit(units: Iterable[Unit], name: Optional[str]) -> Optional[Unit]:
    # exact, case-sensitive (units are referenced by name, not by id)
    if not name:
        return None
    for u in units:
        if u.name == name:
            return u
    return None


@dataclass(frozen=True)
class Resolution:
    baseline: Baseline
    unit: Optional[Unit] = None
    matched_labels: Dict[Category, str] = field(default_factory=dict)
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def as_financial_rows(self) -> Dict[Category, Tuple[D, int]]:
        return {c: (self.baseline.area, self.baseline.price(c)) for c in CATEGORIES}


def resolve_baseline(unit_name: Optional[str], units: Iterable[Unit], tariffs: Iterable[Tariff]) -> Resolution:
    """
    (unit name, tariffs) -> area + unit price per category.
    Never raises: a missing unit or tariff resolves to 0 and is reported as a warning.
    """
    log = logger.bind(unit=unit_name)
    warnings: List[Dict[str, Any]] = []

    unit = find_unit(units, unit_name)
    if unit is None:
        area = D("0")
        warnings.append(
            {"code": "UNIT_NOT_FOUND", "message": f"Unidade não encontrada: {unit_name}", "meta": {"unit": unit_name}}
        )
        log.warning("unit_not_found")
    else:
        area = unit.floor_area

    prices: Dict[Category, int] = {c: 0 for c in CATEGORIES}
    matched: Dict[Category, str] = {}
    for tariff in tariffs:
        category = classify_tariff_label(tariff.label)
        if category is None:
            log.debug("tariff_unmatched", label=tariff.label)
            continue
        # last match wins
        prices[category] = int(tariff.unit_price_cents)
        matched[category] = tariff.label

    for category in CATEGORIES:
        if category not in matched:
            warnings.append(
                {
                    "code": "TARIFF_MISSING",
                    "message": f"Nenhuma tarifa configurada para {category.value}",
                    "meta": {"category": category.value},
                }
            )
            log.warning("tariff_missing", category=category.value)

    return Resolution(
        baseline=Baseline(area=area, prices=prices),
        unit=unit,
        matched_labels=matched,
        warnings=warnings,
    )
