from .documents import ChangeEvent, DocumentStore, StoredDocument
from .profiles import EvaluatorProfile, ProfileStore

__all__ = [
    "ChangeEvent",
    "DocumentStore",
    "StoredDocument",
    "EvaluatorProfile",
    "ProfileStore",
]
