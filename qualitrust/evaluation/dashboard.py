from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

from qualitrust.core.logging_config import logger

from .domain.models import Unit


@dataclass(frozen=True)
class UnitMonthStatus:
    unit: str
    completed: bool


@dataclass(frozen=True)
class MonthlyStatus:
    month: int
    year: int
    units: List[UnitMonthStatus] = field(default_factory=list)
    complianceRate: float = 0.0


def _record_date(record: Mapping[str, Any]) -> Optional[date]:
    raw = record.get("date")
    if not raw:
        return None
    text = str(raw).strip()
    if text.endswith(("Z", "z")):
        # JavaScript toISOString() output
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.bind(value=str(raw)).warning("evaluation_date_unparseable")
        return None


def _in_month(record: Mapping[str, Any], today: date) -> bool:
    d = _record_date(record)
    return d is not None and d.year == today.year and d.month == today.month


def unit_completed_this_month(unit_name: str, evaluations: Iterable[Mapping[str, Any]], today: date) -> bool:
    return any(e.get("unit") == unit_name and _in_month(e, today) for e in evaluations)


def monthly_status(units: Iterable[Unit], evaluations: Iterable[Mapping[str, Any]], today: date) -> MonthlyStatus:
    """
    Per unit: any evaluation dated this month counts, whatever its status.
    complianceRate = evaluations dated this month / number of units x 100.
    """
    units = list(units)
    evaluations = list(evaluations)
    this_month = [e for e in evaluations if _in_month(e, today)]

    rows = [UnitMonthStatus(unit=u.name, completed=unit_completed_this_month(u.name, this_month, today)) for u in units]
    rate = round(len(this_month) / len(units) * 100, 1) if units else 0.0

    return MonthlyStatus(month=today.month, year=today.year, units=rows, complianceRate=rate)
