from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from qualitrust.config import get_settings
from qualitrust.core.logging_config import logger
from qualitrust.errors import EvaluationLocked, NotEvaluationOwner
from qualitrust.store.documents import DocumentStore
from qualitrust.store.profiles import EvaluatorProfile

from .domain.models import EvaluationStatus
from .engine.rule_runner import DiscountRunner
from .engine.session import EvaluationSession
from .records.builder import build_record
from .repository import EvaluationRepository


def display_id(evaluation_id: str) -> str:
    return f"#EV-{evaluation_id[:6].upper()}"


@dataclass(frozen=True)
class ListingRow:
    id: str
    displayId: str
    date: str
    unit: str
    location: str
    type: str
    score: int
    status: str

    @staticmethod
    def from_record(evaluation_id: str, record: Mapping[str, Any]) -> "ListingRow":
        return ListingRow(
            id=evaluation_id,
            displayId=str(record.get("displayId") or display_id(evaluation_id)),
            date=str(record.get("date") or ""),
            unit=str(record.get("unit") or ""),
            location=str(record.get("location") or ""),
            type=str(record.get("type") or ""),
            score=int(record.get("score") or 0),
            status=str(record.get("status") or EvaluationStatus.IN_PROGRESS.value),
        )

    def matches(self, query: Optional[str], status: Optional[str]) -> bool:
        if status and self.status != status:
            return False
        if not query:
            return True
        q = query.lower()
        return any(q in s.lower() for s in (self.unit, self.location, self.displayId))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationService:
    """
    Lifecycle of stored evaluations:
      - created as In Progress or Completed
      - updated only by the creator, and only while In Progress unless reopened
      - deleted only while In Progress
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        runner: Optional[DiscountRunner] = None,
        clock: Callable[[], datetime] = _utc_now,
        score: Optional[int] = None,
    ):
        self.repository = EvaluationRepository(store)
        self._runner = runner
        self._clock = clock
        self._score = get_settings().compliance_score_baseline if score is None else int(score)

    def new_session(self, today: Optional[date] = None) -> EvaluationSession:
        return EvaluationSession.new(today or self._clock().date(), runner=self._runner)

    def load(self, evaluation_id: str, today: Optional[date] = None) -> EvaluationSession:
        doc = self.repository.get(evaluation_id)
        return EvaluationSession.from_record(
            doc.id, doc.data, today=today or self._clock().date(), runner=self._runner
        )

    def submit(
        self,
        session: EvaluationSession,
        profile: EvaluatorProfile,
        status: EvaluationStatus,
        evaluation_id: Optional[str] = None,
        reopen: bool = False,
    ) -> str:
        status = EvaluationStatus(status)
        evaluation_id = evaluation_id or session.evaluation_id
        is_update = evaluation_id is not None

        if is_update:
            self.check_can_update(evaluation_id, profile, reopen)

        record = build_record(
            session.state,
            profile,
            status,
            now=self._clock(),
            score=self._score,
            is_update=is_update,
            summary=session.totals(),
        )

        if is_update:
            self.repository.update(evaluation_id, record)
        else:
            evaluation_id = self.repository.create(record)

        session.evaluation_id = evaluation_id
        session.status = status
        session.evaluator_id = session.evaluator_id or profile.uid
        return evaluation_id

    def delete(self, evaluation_id: str, profile: EvaluatorProfile) -> None:
        doc = self.repository.get(evaluation_id)
        owner = doc.data.get("evaluatorId")
        if owner and owner != profile.uid:
            raise NotEvaluationOwner(evaluation_id, profile.uid)
        status = str(doc.data.get("status") or EvaluationStatus.IN_PROGRESS.value)
        if status != EvaluationStatus.IN_PROGRESS.value:
            raise EvaluationLocked(evaluation_id, status, "Only evaluations in progress can be deleted.")
        self.repository.delete(evaluation_id)

    def list_rows(self, q: Optional[str] = None, status: Optional[str] = None) -> List[ListingRow]:
        rows = [ListingRow.from_record(d.id, d.data) for d in self.repository.list()]
        return [r for r in rows if r.matches(q, status)]

    # ---- internals -------------------------------------------------

    def check_can_update(self, evaluation_id: str, profile: EvaluatorProfile, reopen: bool) -> None:
        doc = self.repository.get(evaluation_id)
        data: Dict[str, Any] = doc.data
        owner = data.get("evaluatorId")
        if owner and owner != profile.uid:
            logger.bind(evaluation_id=evaluation_id, user_id=profile.uid).warning("evaluation_update_denied")
            raise NotEvaluationOwner(evaluation_id, profile.uid)

        status = str(data.get("status") or EvaluationStatus.IN_PROGRESS.value)
        if status != EvaluationStatus.IN_PROGRESS.value and not reopen:
            raise EvaluationLocked(
                evaluation_id, status, "Evaluation is closed; reopen it before editing."
            )
        if reopen and status != EvaluationStatus.IN_PROGRESS.value:
            logger.bind(evaluation_id=evaluation_id, previous_status=status).info("evaluation_reopened")
