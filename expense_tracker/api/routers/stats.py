from __future__ import annotations

from fastapi import APIRouter, Depends

from expense_tracker.api.deps import get_current_user, get_stats_service
from expense_tracker.schemas.auth import UserPublic
from expense_tracker.schemas.stats import MonthSummaryOut, MonthTotalOut
from expense_tracker.services.stats import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/month-total", response_model=MonthTotalOut)
def month_total(
    month: str,
    stats: StatsService = Depends(get_stats_service),
    current_user: UserPublic = Depends(get_current_user),
) -> MonthTotalOut:
    return MonthTotalOut(month=month, total=stats.month_total(current_user.id, month))


@router.get("/month-summary", response_model=MonthSummaryOut)
def month_summary(
    month: str | None = None,
    stats: StatsService = Depends(get_stats_service),
    current_user: UserPublic = Depends(get_current_user),
) -> MonthSummaryOut:
    return stats.month_summary(current_user.id, month)
