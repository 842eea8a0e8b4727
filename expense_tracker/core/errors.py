"""Typed failures raised by the Auth Service and Domain Operations.

Each error optionally names the input ``field`` it concerns so callers can
attach the message to the right form control without parsing the text.
"""

from __future__ import annotations

from enum import Enum


class Field(str, Enum):
    USERNAME = "username"
    EMAIL = "email"
    PASSWORD = "password"
    NAME = "name"
    AMOUNT = "amount"
    CATEGORY = "category"
    DATE = "date"


class ExpenseTrackerError(Exception):
    def __init__(self, message: str, *, field: Field | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        return self.message


class ValidationError(ExpenseTrackerError):
    """Bad user input: blank fields, invalid amount, malformed email or date."""


class ConflictError(ValidationError):
    """Duplicate username, email or category name."""


class NotFoundError(ValidationError):
    """The category or expense does not exist for this user."""


class AuthError(ExpenseTrackerError):
    """Unknown user or wrong password."""


class StorageError(ExpenseTrackerError):
    """Constraint violation or I/O failure in the embedded store."""

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint

    @property
    def is_unique_violation(self) -> bool:
        return self.constraint is not None
