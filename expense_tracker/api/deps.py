from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Path, Request

from expense_tracker.db.gateway import SQLITE_MAX_INTEGER, Database
from expense_tracker.schemas.auth import UserPublic
from expense_tracker.services.auth import AuthService, AuthSession
from expense_tracker.services.categories import CategoryService
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.stats import StatsService

# Ids past the INTEGER range cannot exist; reject them before they reach the driver.
RowId = Annotated[int, Path(le=SQLITE_MAX_INTEGER)]


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_auth_session(auth: AuthService = Depends(get_auth_service)) -> AuthSession:
    return auth.session


def get_current_user(session: AuthSession = Depends(get_auth_session)) -> UserPublic:
    if session.is_booting:
        raise HTTPException(status_code=503, detail="Session is still loading")
    if not session.is_logged_in:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session.user


def get_category_service(request: Request, db: Database = Depends(get_db)) -> CategoryService:
    return CategoryService(db, request.app.state.settings)


def get_expense_service(db: Database = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db)


def get_stats_service(db: Database = Depends(get_db)) -> StatsService:
    return StatsService(db)
