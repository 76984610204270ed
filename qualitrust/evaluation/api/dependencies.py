from __future__ import annotations

from datetime import date

from fastapi import Depends, Header, Request

from qualitrust.store.documents import DocumentStore
from qualitrust.store.profiles import EvaluatorProfile, ProfileStore

from ..reference import ReferenceData
from ..service import EvaluationService


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_today(request: Request) -> date:
    return request.app.state.clock().date()


def get_reference(store: DocumentStore = Depends(get_store)) -> ReferenceData:
    return ReferenceData(store)


def get_service(request: Request, store: DocumentStore = Depends(get_store)) -> EvaluationService:
    return EvaluationService(store, runner=request.app.state.runner, clock=request.app.state.clock)


def current_profile(
    x_user_id: str = Header(..., alias="X-User-Id"),
    store: DocumentStore = Depends(get_store),
) -> EvaluatorProfile:
    # identity comes from the gateway; we only resolve the profile
    return ProfileStore(store).require(x_user_id)
