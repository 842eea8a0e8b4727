from __future__ import annotations

from pydantic import BaseModel, Field


class MonthTotalOut(BaseModel):
    month: str = Field(description="YYYY-MM")
    total: float


class CategoryTotal(BaseModel):
    category_id: int
    category: str
    total: float
    percentage: float = 0.0


class MonthSummaryOut(BaseModel):
    month: str = Field(description="YYYY-MM")
    label: str
    total: float
    count: int
    breakdown: list[CategoryTotal]
    previous_month: str
    next_month: str | None = None
