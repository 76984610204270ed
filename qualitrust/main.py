# qualitrust/main.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from qualitrust import __version__
from qualitrust.core.logging_config import logger, setup_logging
from qualitrust.db import init_db, make_engine, make_session_factory
from qualitrust.errors import PersistenceError, QualitrustError, map_error
from qualitrust.evaluation.api import evaluations, reference
from qualitrust.evaluation.engine.policy_loader import default_runner
from qualitrust.evaluation.engine.rule_runner import DiscountRunner
from qualitrust.store.documents import DocumentStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    database_url: Optional[str] = None,
    *,
    runner: Optional[DiscountRunner] = None,
    clock: Callable[[], datetime] = _utc_now,
) -> FastAPI:
    setup_logging()

    engine = make_engine(database_url)
    init_db(engine)

    # ----------------------------------------------------
    # App init
    # ----------------------------------------------------
    app = FastAPI(title="QualiTrust", version=__version__)
    app.state.store = DocumentStore(make_session_factory(engine), clock=clock)
    app.state.runner = runner or default_runner()
    app.state.clock = clock

    logger.bind(policy_version=app.state.runner.policy.version).info("startup", service="qualitrust-api")

    # ----------------------------------------------------
    # Health
    # ----------------------------------------------------
    @app.get("/health", include_in_schema=True)
    def health() -> dict:
        return {"status": "ok"}

    # ----------------------------------------------------
    # Logging middleware
    # ----------------------------------------------------
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start = time.time()
        bound_logger = logger.bind(
            request_id=request.headers.get("X-Request-ID", "unknown"),
            user_id=request.headers.get("X-User-Id", "unknown"),
            endpoint=str(request.url.path),
            method=request.method,
        )

        bound_logger.info("request_started")
        response = await call_next(request)
        latency_ms = round((time.time() - start) * 1000, 2)

        bound_logger.bind(status_code=response.status_code, latency_ms=latency_ms).info("request_finished")
        return response

    # ----------------------------------------------------
    # Errors
    # ----------------------------------------------------
    @app.exception_handler(QualitrustError)
    def qualitrust_error_handler(request: Request, exc: QualitrustError):
        status_code, body = map_error(exc)
        bound = logger.bind(endpoint=str(request.url.path), code=exc.code, status_code=status_code)
        if isinstance(exc, PersistenceError):
            bound.error("persistence_failed", operation=exc.operation, collection=exc.collection)
        else:
            bound.info("request_rejected")
        return JSONResponse(status_code=status_code, content=body)

    # ----------------------------------------------------
    # Routers
    # ----------------------------------------------------
    app.include_router(evaluations.router)
    app.include_router(reference.router)

    return app
