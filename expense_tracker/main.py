from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from expense_tracker.api.routers import api_router
from expense_tracker.core.config import Settings, settings as default_settings
from expense_tracker.core.errors import (
    AuthError,
    ConflictError,
    ExpenseTrackerError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from expense_tracker.core.logging import configure_logging
from expense_tracker.core.session_store import FileSessionStore, SessionStore
from expense_tracker.db.gateway import Database
from expense_tracker.db.init_db import init_db
from expense_tracker.db.session import build_engine
from expense_tracker.services.auth import AuthService

logger = structlog.get_logger(__name__)


def _status_for(err: ExpenseTrackerError) -> int:
    # Most specific first: NotFoundError and ConflictError are ValidationErrors too.
    if isinstance(err, NotFoundError):
        return 404
    if isinstance(err, ConflictError):
        return 409
    if isinstance(err, ValidationError):
        return 400
    if isinstance(err, AuthError):
        return 401
    return 500


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    store: SessionStore | None = None,
) -> FastAPI:
    settings = settings or default_settings
    engine = engine or build_engine(settings.database_url)
    store = store or FileSessionStore(settings.session_file)

    db = Database(engine)

    app = FastAPI(title="Expense Tracker API")
    app.state.settings = settings
    app.state.db = db
    app.state.auth = AuthService(db, store, settings=settings)

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(ExpenseTrackerError)
    async def expense_tracker_error(request: Request, exc: ExpenseTrackerError) -> JSONResponse:
        status_code = _status_for(exc)
        if isinstance(exc, StorageError):
            logger.error("storage_error", path=request.url.path, error=exc.message)
        field = exc.field.value if exc.field is not None else None
        return JSONResponse({"detail": exc.message, "field": field}, status_code=status_code)

    @app.on_event("startup")
    def on_startup() -> None:
        configure_logging(settings)
        # No store, no app: let a schema failure abort startup.
        init_db(engine)
        app.state.auth.restore()

    return app


app = create_app()
