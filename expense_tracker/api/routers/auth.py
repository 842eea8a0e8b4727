from __future__ import annotations

from fastapi import APIRouter, Depends

from expense_tracker.api.deps import get_auth_service, get_auth_session, get_current_user
from expense_tracker.schemas.auth import LoginRequest, RegisterRequest, SessionOut, UserPublic
from expense_tracker.services.auth import AuthService, AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserPublic)
def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> UserPublic:
    # Registration does not sign in; the client logs in afterwards.
    return auth.register(payload.username, payload.email, payload.password)


@router.post("/login", response_model=UserPublic)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> UserPublic:
    return auth.login(payload.username, payload.password)


@router.post("/logout")
def logout(auth: AuthService = Depends(get_auth_service)) -> dict:
    auth.logout()
    return {"ok": True}


@router.get("/session", response_model=SessionOut)
def session(current: AuthSession = Depends(get_auth_session)) -> SessionOut:
    return SessionOut(status=current.status, user=current.user)


@router.get("/me", response_model=UserPublic)
def me(current_user: UserPublic = Depends(get_current_user)) -> UserPublic:
    return current_user
