from __future__ import annotations

import copy
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from qualitrust.core.logging_config import logger
from qualitrust.errors import DocumentNotFound, PersistenceError

from .models import DocumentORM


@dataclass(frozen=True)
class StoredDocument:
    id: str
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    doc_id: str
    kind: str  # "added" | "modified" | "removed"
    data: Optional[Dict[str, Any]] = field(default=None)


Listener = Callable[[ChangeEvent], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid4().hex[:20]


class DocumentStore:
    """
    Collections of JSON documents on top of SQLAlchemy.

    - every write commits on its own session; failures roll back and raise
      PersistenceError (caller keeps its in-memory state and may retry)
    - listeners registered through subscribe() are notified after commit
    """

    def __init__(self, session_factory: sessionmaker, *, clock: Callable[[], datetime] = _utc_now):
        self._session_factory = session_factory
        self._clock = clock
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    # ---- writes ----------------------------------------------------

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_document_id()
        now = self._clock()
        row = DocumentORM(
            collection=collection,
            doc_id=doc_id,
            data=copy.deepcopy(data),
            created_at=now,
            updated_at=now,
        )
        with self._write("add", collection) as db:
            db.add(row)
        self._notify(ChangeEvent(collection, doc_id, "added", copy.deepcopy(data)))
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or fully replace a document (keeps the original created_at)."""
        now = self._clock()
        kind = "modified"
        with self._write("set", collection) as db:
            row = db.get(DocumentORM, (collection, doc_id))
            if row is None:
                kind = "added"
                db.add(
                    DocumentORM(
                        collection=collection,
                        doc_id=doc_id,
                        data=copy.deepcopy(data),
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                row.data = copy.deepcopy(data)
                row.updated_at = now
        self._notify(ChangeEvent(collection, doc_id, kind, copy.deepcopy(data)))

    def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow merge of `changes` into an existing document."""
        now = self._clock()
        with self._write("update", collection) as db:
            row = db.get(DocumentORM, (collection, doc_id))
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            merged = {**(row.data or {}), **copy.deepcopy(changes)}
            row.data = merged
            row.updated_at = now
        self._notify(ChangeEvent(collection, doc_id, "modified", copy.deepcopy(merged)))
        return merged

    def delete(self, collection: str, doc_id: str) -> None:
        with self._write("delete", collection) as db:
            row = db.get(DocumentORM, (collection, doc_id))
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            db.delete(row)
        self._notify(ChangeEvent(collection, doc_id, "removed"))

    # ---- reads -----------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._read("get", collection) as db:
            row = db.get(DocumentORM, (collection, doc_id))
            return self._to_doc(row) if row is not None else None

    def list(self, collection: str, *, newest_first: bool = True) -> List[StoredDocument]:
        order = DocumentORM.created_at.desc() if newest_first else DocumentORM.created_at.asc()
        stmt = select(DocumentORM).where(DocumentORM.collection == collection).order_by(order)
        with self._read("list", collection) as db:
            return [self._to_doc(r) for r in db.scalars(stmt).all()]

    def where(self, collection: str, field_name: str, value: Any) -> List[StoredDocument]:
        # Equality on a top-level JSON field; filtered in Python so it works on any backend.
        return [d for d in self.list(collection) if d.data.get(field_name) == value]

    # ---- subscriptions ---------------------------------------------

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        self._listeners[collection].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[collection]:
                self._listeners[collection].remove(listener)

        return unsubscribe

    # ---- internals -------------------------------------------------

    @staticmethod
    def _to_doc(row: DocumentORM) -> StoredDocument:
        return StoredDocument(
            id=row.doc_id,
            data=copy.deepcopy(row.data or {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _notify(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners.get(event.collection, [])):
            try:
                listener(event)
            except Exception:
                # the write is already committed; a broken listener must not undo it
                logger.bind(collection=event.collection, doc_id=event.doc_id).exception(
                    "document_listener_failed"
                )

    def _write(self, operation: str, collection: str) -> "_Unit":
        return _Unit(self._session_factory, operation, collection, commit=True)

    def _read(self, operation: str, collection: str) -> "_Unit":
        return _Unit(self._session_factory, operation, collection, commit=False)


class _Unit:
    """Session scope that maps SQLAlchemy failures onto PersistenceError."""

    def __init__(self, factory: sessionmaker, operation: str, collection: str, *, commit: bool):
        self._factory = factory
        self._operation = operation
        self._collection = collection
        self._commit = commit
        self._db: Optional[Session] = None

    def __enter__(self) -> Session:
        try:
            self._db = self._factory()
        except SQLAlchemyError as e:
            raise self._fail(e) from e
        return self._db

    def __exit__(self, exc_type, exc, tb) -> bool:
        db = self._db
        assert db is not None
        try:
            if exc is None:
                if self._commit:
                    db.commit()
                return False
            db.rollback()
            if isinstance(exc, SQLAlchemyError):
                raise self._fail(exc) from exc
            return False
        except SQLAlchemyError as e:
            db.rollback()
            raise self._fail(e) from e
        finally:
            db.close()

    def _fail(self, e: BaseException) -> PersistenceError:
        logger.bind(operation=self._operation, collection=self._collection).error(
            "persistence_failed", error=repr(e)
        )
        return PersistenceError(self._operation, self._collection, e)
