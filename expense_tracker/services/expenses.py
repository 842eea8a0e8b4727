from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import structlog

from expense_tracker.core.datetime_utils import (
    clipped_week_range,
    first_day_of_month,
    last_day_of_month,
    month_key,
    parse_ymd,
    pretty_date,
    to_ymd,
    utc_now_iso,
    week_range_label_clipped,
    week_start_monday,
    weekday_short,
)
from expense_tracker.core.errors import Field, NotFoundError, ValidationError
from expense_tracker.db.gateway import Database
from expense_tracker.schemas.expense import ExpenseDetail, ExpenseFilter, ExpenseOut, ExpenseSection

logger = structlog.get_logger(__name__)

_EXPENSE_COLUMNS = "id, user_id, category_id, amount, date, note, created_at, updated_at"


def parse_amount(value) -> float:
    """Accept a positive, finite number (or numeric string); anything else is a ValidationError."""

    invalid = ValidationError("Please enter a valid amount.", field=Field.AMOUNT)

    if value is None or isinstance(value, bool):
        raise invalid
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise invalid
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            raise invalid from None
    elif isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        raise invalid

    if not math.isfinite(number) or number <= 0:
        raise invalid
    return number


def parse_expense_date(value, today: date | None = None) -> str:
    if value is None:
        return to_ymd(today or date.today())
    if isinstance(value, datetime):
        return to_ymd(value.date())
    if isinstance(value, date):
        return to_ymd(value)
    try:
        return to_ymd(parse_ymd(value))
    except ValueError:
        raise ValidationError("Please enter a valid date (YYYY-MM-DD).", field=Field.DATE) from None


def normalize_note(note: str | None) -> str | None:
    if note is None:
        return None
    return note.strip() or None


def filter_window(filter: ExpenseFilter, today: date) -> tuple[date, date]:
    """Inclusive date range covered by a dashboard filter.

    "this week" is Monday-Sunday of the current week, cut at the edges of the
    current month so it never reaches into an adjacent one.
    """

    filter = ExpenseFilter(filter)
    if filter == ExpenseFilter.TODAY:
        return today, today

    key = month_key(today)
    if filter == ExpenseFilter.THIS_MONTH:
        return first_day_of_month(key), last_day_of_month(key)

    return clipped_week_range(week_start_monday(today), key)


def group_expenses(
    expenses: list[ExpenseOut],
    filter: ExpenseFilter,
    today: date | None = None,
) -> list[ExpenseSection]:
    """Split dashboard rows into sections, newest first.

    today: a single unlabeled section. this week: one section per day.
    this month: one section per Monday-start week, labeled with the week
    range clipped to the current month.
    """

    filter = ExpenseFilter(filter)
    today = today or date.today()
    if not expenses:
        return []

    if filter == ExpenseFilter.TODAY:
        return [ExpenseSection(key="today", title="", items=list(expenses))]

    groups: dict[str, list[ExpenseOut]] = {}
    if filter == ExpenseFilter.THIS_WEEK:
        for e in expenses:
            groups.setdefault(e.date, []).append(e)

        sections = []
        for day in sorted(groups, reverse=True):
            d = parse_ymd(day)
            sections.append(
                ExpenseSection(
                    key=f"day-{day}",
                    title=f"{pretty_date(d)} ({weekday_short(d)})",
                    items=groups[day],
                )
            )
        return sections

    key = month_key(today)
    lo, hi = first_day_of_month(key), last_day_of_month(key)
    for e in expenses:
        d = parse_ymd(e.date)
        # A week straddling the month edge only contributes its in-month days.
        if d < lo or d > hi:
            continue
        groups.setdefault(to_ymd(week_start_monday(d)), []).append(e)

    return [
        ExpenseSection(
            key=f"week-{monday}",
            title=week_range_label_clipped(parse_ymd(monday), key),
            items=groups[monday],
        )
        for monday in sorted(groups, reverse=True)
    ]


class ExpenseService:
    def __init__(self, db: Database) -> None:
        self.db = db

    def _check_category(self, user_id: int, category_id: int | None, current_id: int | None = None) -> int:
        if category_id is None:
            raise ValidationError("Please select a category.", field=Field.CATEGORY)

        row = self.db.fetch_one(
            "SELECT id, is_active FROM categories WHERE id = ? AND user_id = ?",
            [int(category_id), user_id],
        )
        if row is None:
            raise ValidationError("Invalid category.", field=Field.CATEGORY)
        # An expense may keep a category that was deleted after it was recorded.
        if not row["is_active"] and row["id"] != current_id:
            raise ValidationError("Category is no longer available.", field=Field.CATEGORY)
        return row["id"]

    def get_expense(self, user_id: int, expense_id: int) -> ExpenseDetail | None:
        return self.db.fetch_one(
            f"SELECT {_EXPENSE_COLUMNS} FROM expenses WHERE id = ? AND user_id = ?",
            [expense_id, user_id],
            model=ExpenseDetail,
        )

    def add_expense(
        self,
        user_id: int,
        amount,
        category_id: int | None,
        expense_date=None,
        note: str | None = None,
        today: date | None = None,
    ) -> ExpenseDetail:
        value = parse_amount(amount)
        ymd = parse_expense_date(expense_date, today)
        cid = self._check_category(user_id, category_id)
        now = utc_now_iso()

        with self.db.transaction():
            self.db.execute(
                """
                INSERT INTO expenses (user_id, category_id, amount, date, note, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [user_id, cid, value, ymd, normalize_note(note), now, now],
            )
            created = self.db.fetch_one(
                f"SELECT {_EXPENSE_COLUMNS} FROM expenses WHERE id = last_insert_rowid()",
                model=ExpenseDetail,
            )

        logger.info("expense_added", user_id=user_id, expense_id=created.id)
        return created

    def update_expense(
        self,
        user_id: int,
        expense_id: int,
        amount,
        category_id: int | None,
        expense_date=None,
        note: str | None = None,
    ) -> ExpenseDetail:
        existing = self.get_expense(user_id, expense_id)
        if existing is None:
            raise NotFoundError("Expense not found")

        value = parse_amount(amount)
        ymd = parse_expense_date(expense_date) if expense_date is not None else existing.date
        cid = self._check_category(user_id, category_id, current_id=existing.category_id)

        self.db.execute(
            """
            UPDATE expenses
            SET category_id = ?, amount = ?, date = ?, note = ?, updated_at = ?
            WHERE id = ? AND user_id = ?
            """,
            [cid, value, ymd, normalize_note(note), utc_now_iso(), expense_id, user_id],
        )
        return self.get_expense(user_id, expense_id)

    def delete_expense(self, user_id: int, expense_id: int) -> None:
        # Scoped by owner so a stale or guessed id cannot touch another user's row.
        self.db.execute("DELETE FROM expenses WHERE id = ? AND user_id = ?", [expense_id, user_id])
        logger.info("expense_deleted", user_id=user_id, expense_id=expense_id)

    def list_expenses(
        self,
        user_id: int,
        filter: ExpenseFilter = ExpenseFilter.TODAY,
        today: date | None = None,
    ) -> list[ExpenseOut]:
        start, end = filter_window(filter, today or date.today())

        return self.db.fetch_all(
            """
            SELECT e.id, e.amount, e.date, e.note, c.name AS category
            FROM expenses e
            JOIN categories c ON c.id = e.category_id
            WHERE e.user_id = ? AND e.date BETWEEN ? AND ?
            ORDER BY e.date DESC, e.id DESC
            """,
            [user_id, to_ymd(start), to_ymd(end)],
            model=ExpenseOut,
        )

    def list_sections(
        self,
        user_id: int,
        filter: ExpenseFilter = ExpenseFilter.TODAY,
        today: date | None = None,
    ) -> list[ExpenseSection]:
        today = today or date.today()
        return group_expenses(self.list_expenses(user_id, filter, today), filter, today)
