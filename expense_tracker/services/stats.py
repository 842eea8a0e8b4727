from __future__ import annotations

from datetime import date

from expense_tracker.core.datetime_utils import can_go_next, month_key, month_label, parse_month_key, shift_month
from expense_tracker.core.errors import Field, ValidationError
from expense_tracker.db.gateway import Database
from expense_tracker.schemas.stats import CategoryTotal, MonthSummaryOut


def _month_pattern(key: str) -> str:
    try:
        parse_month_key(key)
    except ValueError:
        raise ValidationError("Invalid month format (YYYY-MM)", field=Field.DATE) from None
    return f"{key}%"


class StatsService:
    def __init__(self, db: Database) -> None:
        self.db = db

    def month_total(self, user_id: int, month: str) -> float:
        row = self.db.fetch_one(
            "SELECT IFNULL(SUM(amount), 0) AS total FROM expenses WHERE user_id = ? AND date LIKE ?",
            [user_id, _month_pattern(month)],
        )
        return float(row["total"]) if row is not None else 0.0

    def category_breakdown(self, user_id: int, month: str) -> list[CategoryTotal]:
        rows = self.db.fetch_all(
            """
            SELECT c.id AS category_id, c.name AS category, IFNULL(SUM(e.amount), 0) AS total
            FROM expenses e
            JOIN categories c ON c.id = e.category_id
            WHERE e.user_id = ? AND e.date LIKE ?
            GROUP BY c.id
            ORDER BY total DESC, c.name ASC
            """,
            [user_id, _month_pattern(month)],
            model=CategoryTotal,
        )

        grand_total = sum(r.total for r in rows)
        for r in rows:
            r.percentage = (r.total / grand_total) * 100 if grand_total > 0 else 0.0
        return rows

    def month_summary(self, user_id: int, month: str | None = None, today: date | None = None) -> MonthSummaryOut:
        today = today or date.today()
        key = month or month_key(today)

        stats = self.db.fetch_one(
            """
            SELECT IFNULL(SUM(amount), 0) AS total, COUNT(id) AS count
            FROM expenses
            WHERE user_id = ? AND date LIKE ?
            """,
            [user_id, _month_pattern(key)],
        )

        return MonthSummaryOut(
            month=key,
            label=month_label(key),
            total=float(stats["total"]),
            count=int(stats["count"]),
            breakdown=self.category_breakdown(user_id, key),
            previous_month=shift_month(key, -1),
            next_month=shift_month(key, 1) if can_go_next(key, today) else None,
        )
