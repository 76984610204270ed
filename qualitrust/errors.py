from __future__ import annotations

from typing import Any, Dict, Optional, Tuple


class QualitrustError(Exception):
    """
    Base for all domain errors. Carries a stable code, a user-facing message
    and a meta payload (same shape as engine blocks/warnings).
    """

    code: str = "QUALITRUST_ERROR"
    http_status: int = 500

    def __init__(self, message: str, meta: Optional[Dict[str, Any]] = None):
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")

    def to_body(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": {"code": self.code, "message": self.message, "meta": self.meta},
        }


class PersistenceError(QualitrustError):
    """Any failed read/write against the document store. Safe to retry."""

    code = "PERSISTENCE_FAILED"
    http_status = 503

    def __init__(self, operation: str, collection: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.collection = collection
        self.cause = cause
        super().__init__(
            f"Could not {operation} in '{collection}'. Please try again.",
            {"operation": operation, "collection": collection, "cause": repr(cause) if cause else None},
        )


class EvaluationNotFound(QualitrustError):
    code = "EVALUATION_NOT_FOUND"
    http_status = 404

    def __init__(self, evaluation_id: str):
        self.evaluation_id = evaluation_id
        super().__init__(f"Evaluation not found: {evaluation_id}", {"evaluationId": evaluation_id})


class DocumentNotFound(QualitrustError):
    code = "DOCUMENT_NOT_FOUND"
    http_status = 404

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(
            f"Document not found: {collection}/{doc_id}",
            {"collection": collection, "docId": doc_id},
        )


class ValidationFailed(QualitrustError):
    """Blocks a submission; `errors` maps field name -> message."""

    code = "VALIDATION_FAILED"
    http_status = 422

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("Validation failed.", {"fields": self.errors})


class EvaluationLocked(QualitrustError):
    code = "EVALUATION_LOCKED"
    http_status = 409

    def __init__(self, evaluation_id: str, status: str, reason: str):
        self.evaluation_id = evaluation_id
        self.status = status
        self.reason = reason
        super().__init__(reason, {"evaluationId": evaluation_id, "status": status})


class NotEvaluationOwner(QualitrustError):
    code = "NOT_EVALUATION_OWNER"
    http_status = 403

    def __init__(self, evaluation_id: str, user_id: str):
        super().__init__(
            "Only the evaluator who created this evaluation may change it.",
            {"evaluationId": evaluation_id, "userId": user_id},
        )


class ProfileMissing(QualitrustError):
    code = "PROFILE_MISSING"
    http_status = 403

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User profile not found. Complete profile setup first.", {"userId": user_id})


def map_error(e: QualitrustError) -> Tuple[int, Dict[str, Any]]:
    return e.http_status, e.to_body()
