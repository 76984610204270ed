from __future__ import annotations

from typing import Any, Dict, List

from qualitrust.core.logging_config import logger
from qualitrust.errors import DocumentNotFound, EvaluationNotFound
from qualitrust.store.documents import DocumentStore, StoredDocument

from .records.builder import EVALUATIONS


class EvaluationRepository:
    """Evaluation records in the `evaluations` collection."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def create(self, record: Dict[str, Any]) -> str:
        evaluation_id = self._store.add(EVALUATIONS, record)
        logger.bind(evaluation_id=evaluation_id, unit=record.get("unit"), status=record.get("status")).info(
            "evaluation_created"
        )
        return evaluation_id

    def update(self, evaluation_id: str, record: Dict[str, Any]) -> None:
        try:
            self._store.update(EVALUATIONS, evaluation_id, record)
        except DocumentNotFound as e:
            raise EvaluationNotFound(evaluation_id) from e
        logger.bind(evaluation_id=evaluation_id, status=record.get("status")).info("evaluation_updated")

    def get(self, evaluation_id: str) -> StoredDocument:
        doc = self._store.get(EVALUATIONS, evaluation_id)
        if doc is None:
            raise EvaluationNotFound(evaluation_id)
        return doc

    def delete(self, evaluation_id: str) -> None:
        try:
            self._store.delete(EVALUATIONS, evaluation_id)
        except DocumentNotFound as e:
            raise EvaluationNotFound(evaluation_id) from e
        logger.bind(evaluation_id=evaluation_id).info("evaluation_deleted")

    def list(self) -> List[StoredDocument]:
        # newest first
        return self._store.list(EVALUATIONS, newest_first=True)
