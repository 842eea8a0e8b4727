from __future__ import annotations

from datetime import date as Date
from enum import Enum

from pydantic import BaseModel, Field

from expense_tracker.db.gateway import SQLITE_MAX_INTEGER


class ExpenseFilter(str, Enum):
    TODAY = "today"
    THIS_WEEK = "this week"
    THIS_MONTH = "this month"


class ExpenseCreate(BaseModel):
    # Loose types: bad input is reported by the service as a field error.
    amount: float | str
    category_id: int | None = Field(default=None, le=SQLITE_MAX_INTEGER)
    date: Date | str | None = None
    note: str | None = Field(default=None, max_length=1000)


class ExpenseUpdate(ExpenseCreate):
    pass


class ExpenseOut(BaseModel):
    """A dashboard row: the expense joined with its category's name."""

    id: int
    amount: float
    date: str
    note: str | None = None
    category: str


class ExpenseDetail(BaseModel):
    id: int
    user_id: int
    category_id: int
    amount: float
    date: str
    note: str | None = None
    created_at: str
    updated_at: str


class ExpenseSection(BaseModel):
    key: str
    title: str
    items: list[ExpenseOut] = Field(default_factory=list)
