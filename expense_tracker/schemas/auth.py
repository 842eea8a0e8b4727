from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class UserPublic(BaseModel):
    id: int
    username: str
    email: str


class SessionStatus(str, Enum):
    BOOTING = "booting"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class SessionOut(BaseModel):
    status: SessionStatus
    user: UserPublic | None = None
