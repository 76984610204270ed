from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from qualitrust.config import get_settings
from qualitrust.core.logging_config import logger
from qualitrust.errors import ValidationFailed
from qualitrust.store.documents import ChangeEvent, DocumentStore

from .domain.models import ContactInfo, Tariff, Unit
from .domain.money import parse_decimal_comma, parse_decimal_comma_strict, parse_money_cents
from .engine.tariff_resolver import Resolution, find_unit, resolve_baseline

SETTINGS = "settings"
UNITS = "units"

NotificationFrequency = Literal["once", "weekly"]

DEFAULT_TARIFFS: Tuple[Dict[str, str], ...] = (
    {"label": "Controle Geral de Insetos", "value": "45,50"},
    {"label": "Mitigação de Roedores", "value": "120,00"},
    {"label": "Serviço de Desinfecção", "value": "85,75"},
)


# -----------------------------
# Contract settings (single document)
# -----------------------------


@dataclass(frozen=True)
class ContractSettings:
    tariffs: List[Dict[str, str]] = field(default_factory=lambda: [dict(t) for t in DEFAULT_TARIFFS])
    contractId: str = ""
    contractValue: str = ""
    contractValidity: str = ""
    mainManager: str = ""
    substituteManager: str = ""
    referenceProcess: str = ""
    notificationPeriods: List[int] = field(default_factory=lambda: [30, 60, 90])
    emailRecipients: List[str] = field(default_factory=list)
    notificationFrequency: NotificationFrequency = "once"

    def tariff_rows(self) -> List[Tariff]:
        return [
            Tariff(label=str(t.get("label") or ""), unit_price_cents=parse_money_cents(t.get("value")))
            for t in self.tariffs
        ]

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_document(data: Dict[str, Any]) -> "ContractSettings":
        base = ContractSettings()
        return ContractSettings(
            tariffs=[
                {"label": str(t.get("label") or ""), "value": str(t.get("value") or "")}
                for t in (data.get("tariffs") or base.tariffs)
            ],
            contractId=str(data.get("contractId") or ""),
            contractValue=str(data.get("contractValue") or ""),
            contractValidity=str(data.get("contractValidity") or ""),
            mainManager=str(data.get("mainManager") or ""),
            substituteManager=str(data.get("substituteManager") or ""),
            referenceProcess=str(data.get("referenceProcess") or ""),
            notificationPeriods=[int(p) for p in (data.get("notificationPeriods") or base.notificationPeriods)],
            emailRecipients=[str(e) for e in (data.get("emailRecipients") or [])],
            notificationFrequency=data.get("notificationFrequency") or "once",
        )


def validate_settings(s: ContractSettings) -> None:
    errors: Dict[str, str] = {}
    for i, t in enumerate(s.tariffs):
        if not str(t.get("label") or "").strip():
            errors[f"tariffs[{i}].label"] = "Tariff label is required."
    if any(int(p) <= 0 for p in s.notificationPeriods):
        errors["notificationPeriods"] = "Notification periods must be positive day counts."
    bad = [e for e in s.emailRecipients if "@" not in e]
    if bad:
        errors["emailRecipients"] = f"Invalid e-mail address: {bad[0]}"
    if s.notificationFrequency not in ("once", "weekly"):
        errors["notificationFrequency"] = "Frequency must be 'once' or 'weekly'."
    if errors:
        raise ValidationFailed(errors)


# -----------------------------
# Units
# -----------------------------


def _contact(d: Any) -> ContactInfo:
    d = d or {}
    return ContactInfo(name=str(d.get("name") or ""), email=str(d.get("email") or ""), ramal=str(d.get("ramal") or ""))


def unit_from_document(doc_id: Optional[str], data: Dict[str, Any]) -> Unit:
    return Unit(
        id=doc_id,
        name=str(data.get("name") or ""),
        floor_area=parse_decimal_comma(data.get("squareMeters")),
        address=str(data.get("address") or ""),
        titular=_contact(data.get("titular")),
        substituto=_contact(data.get("substituto")),
    )


def validate_unit(data: Dict[str, Any]) -> Dict[str, Any]:
    """Field-level checks before a unit is written; returns the cleaned document."""
    errors: Dict[str, str] = {}
    name = str(data.get("name") or "").strip()
    if not name:
        errors["name"] = "Unit name is required."

    raw_area = data.get("squareMeters")
    area = parse_decimal_comma_strict(raw_area)
    if raw_area is None or str(raw_area).strip() == "":
        errors["squareMeters"] = "Floor area is required."
    elif area is None:
        errors["squareMeters"] = "Floor area must be a number, e.g. 1.200,50."
    elif area < 0:
        errors["squareMeters"] = "Floor area cannot be negative."

    if errors:
        raise ValidationFailed(errors)

    return {
        "name": name,
        "squareMeters": raw_area if isinstance(raw_area, (int, float)) else str(raw_area).strip(),
        "address": str(data.get("address") or ""),
        "titular": asdict(_contact(data.get("titular"))),
        "substituto": asdict(_contact(data.get("substituto"))),
    }


# -----------------------------
# Snapshot + service
# -----------------------------


@dataclass(frozen=True)
class ReferenceSnapshot:
    units: Tuple[Unit, ...] = ()
    tariffs: Tuple[Tariff, ...] = ()

    def resolve(self, unit_name: Optional[str]) -> Resolution:
        return resolve_baseline(unit_name, self.units, self.tariffs)


class ReferenceData:
    def __init__(self, store: DocumentStore, settings_document_id: Optional[str] = None):
        self._store = store
        self._settings_id = settings_document_id or get_settings().settings_document_id

    # ---- settings --------------------------------------------------

    def load_settings(self) -> ContractSettings:
        doc = self._store.get(SETTINGS, self._settings_id)
        if doc is None:
            return ContractSettings()
        return ContractSettings.from_document(doc.data)

    def save_settings(self, settings: ContractSettings) -> None:
        validate_settings(settings)
        self._store.set(SETTINGS, self._settings_id, settings.to_document())
        logger.bind(contract_id=settings.contractId).info("settings_saved")

    # ---- units -----------------------------------------------------

    def list_units(self) -> List[Unit]:
        units = [unit_from_document(d.id, d.data) for d in self._store.list(UNITS)]
        return sorted(units, key=lambda u: u.name)

    def find_unit_by_name(self, name: str) -> Optional[Unit]:
        return find_unit(self.list_units(), name)

    def save_unit(self, data: Dict[str, Any], unit_id: Optional[str] = None) -> str:
        cleaned = validate_unit(data)
        if unit_id:
            self._store.update(UNITS, unit_id, cleaned)
        else:
            unit_id = self._store.add(UNITS, cleaned)
        logger.bind(unit_id=unit_id, unit=cleaned["name"]).info("unit_saved")
        return unit_id

    def delete_unit(self, unit_id: str) -> None:
        self._store.delete(UNITS, unit_id)
        logger.bind(unit_id=unit_id).info("unit_deleted")

    # ---- snapshots -------------------------------------------------

    def snapshot(self) -> ReferenceSnapshot:
        return ReferenceSnapshot(
            units=tuple(self.list_units()),
            tariffs=tuple(self.load_settings().tariff_rows()),
        )

    def watch(self) -> "LiveReference":
        return LiveReference(self)


class LiveReference:
    """Latest reference snapshot, refreshed whenever units or settings change."""

    def __init__(self, reference: ReferenceData):
        self._reference = reference
        self.current: ReferenceSnapshot = reference.snapshot()
        self._unsubscribers: List[Callable[[], None]] = [
            reference._store.subscribe(UNITS, self._on_change),
            reference._store.subscribe(SETTINGS, self._on_change),
        ]

    def _on_change(self, event: ChangeEvent) -> None:
        self.current = self._reference.snapshot()
        logger.bind(collection=event.collection, doc_id=event.doc_id).debug("reference_snapshot_refreshed")

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
