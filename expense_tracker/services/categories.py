from __future__ import annotations

import structlog

from expense_tracker.core.config import Settings, settings as default_settings
from expense_tracker.core.datetime_utils import utc_now_iso
from expense_tracker.core.errors import ConflictError, Field, NotFoundError, StorageError, ValidationError
from expense_tracker.db.gateway import Database
from expense_tracker.schemas.category import CategoryOut

logger = structlog.get_logger(__name__)


def normalize_category_name(name: str) -> str:
    """Trim and collapse inner whitespace runs: '  Eating   out ' -> 'Eating out'."""

    return " ".join((name or "").split())


def _duplicate_message(name: str) -> str:
    return f'"{name}" is already in your category list.'


class CategoryService:
    def __init__(self, db: Database, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or default_settings

    def ensure_default_categories(self, user_id: int) -> bool:
        """Seed the default set for a user who has never had a category.

        Returns False when seeding failed; the failure is logged and otherwise
        ignored, leaving the user with no categories.
        """

        row = self.db.fetch_one("SELECT COUNT(*) AS c FROM categories WHERE user_id = ?", [user_id])
        if row is not None and row["c"] > 0:
            return True

        now = utc_now_iso()
        try:
            with self.db.transaction():
                for name in self.settings.default_categories:
                    self.db.execute(
                        "INSERT INTO categories (user_id, name, created_at, is_active) VALUES (?, ?, ?, 1)",
                        [user_id, name, now],
                    )
        except StorageError as err:
            logger.warning("category_seed_failed", user_id=user_id, error=err.message)
            return False
        return True

    def list_categories(self, user_id: int, *, seed: bool = True) -> list[CategoryOut]:
        if seed:
            self.ensure_default_categories(user_id)

        return self.db.fetch_all(
            """
            SELECT id, name FROM categories
            WHERE user_id = ? AND is_active = 1
            ORDER BY name COLLATE NOCASE ASC, id ASC
            """,
            [user_id],
            model=CategoryOut,
        )

    def get_category(self, user_id: int, category_id: int) -> CategoryOut | None:
        return self.db.fetch_one(
            "SELECT id, name FROM categories WHERE id = ? AND user_id = ?",
            [category_id, user_id],
            model=CategoryOut,
        )

    def _find_active_duplicate(self, user_id: int, name: str, exclude_id: int | None = None) -> bool:
        sql = "SELECT id FROM categories WHERE user_id = ? AND is_active = 1 AND lower(name) = lower(?)"
        params: list = [user_id, name]
        if exclude_id is not None:
            sql += " AND id != ?"
            params.append(exclude_id)
        return self.db.fetch_one(sql, params) is not None

    def add_category(self, user_id: int, name: str) -> CategoryOut:
        n = normalize_category_name(name)
        if not n:
            raise ValidationError("Please enter a category name.", field=Field.NAME)

        if self._find_active_duplicate(user_id, n):
            raise ConflictError(_duplicate_message(n), field=Field.NAME)

        # UNIQUE(user_id, name) still covers soft-deleted rows, so bring an exact match back.
        inactive = self.db.fetch_one(
            "SELECT id FROM categories WHERE user_id = ? AND name = ? AND is_active = 0",
            [user_id, n],
        )
        if inactive is not None:
            self.db.execute(
                "UPDATE categories SET is_active = 1 WHERE id = ? AND user_id = ?",
                [inactive["id"], user_id],
            )
            return CategoryOut(id=inactive["id"], name=n)

        try:
            self.db.execute(
                "INSERT INTO categories (user_id, name, created_at, is_active) VALUES (?, ?, ?, 1)",
                [user_id, n, utc_now_iso()],
            )
        except StorageError as err:
            if err.is_unique_violation:
                raise ConflictError(_duplicate_message(n), field=Field.NAME) from err
            raise

        created = self.db.fetch_one(
            "SELECT id, name FROM categories WHERE user_id = ? AND name = ?",
            [user_id, n],
            model=CategoryOut,
        )
        if created is None:
            raise StorageError("Could not add category.")
        return created

    def rename_category(self, user_id: int, category_id: int, name: str) -> CategoryOut:
        n = normalize_category_name(name)
        if not n:
            raise ValidationError("Category name cannot be empty.", field=Field.NAME)

        if self.get_category(user_id, category_id) is None:
            raise NotFoundError("Category not found", field=Field.CATEGORY)

        if self._find_active_duplicate(user_id, n, exclude_id=category_id):
            raise ConflictError(f'"{n}" already exists.', field=Field.NAME)

        try:
            self.db.execute(
                "UPDATE categories SET name = ? WHERE id = ? AND user_id = ?",
                [n, category_id, user_id],
            )
        except StorageError as err:
            if err.is_unique_violation:
                raise ConflictError(f'"{n}" already exists.', field=Field.NAME) from err
            raise

        return CategoryOut(id=category_id, name=n)

    def delete_category(self, user_id: int, category_id: int) -> bool:
        """Soft delete. Expenses keep pointing at the row and keep showing its name.

        Returns False when the user has no such category or the write failed.
        """

        try:
            changed = self.db.execute(
                "UPDATE categories SET is_active = 0 WHERE id = ? AND user_id = ?",
                [category_id, user_id],
            )
        except StorageError as err:
            logger.warning("category_delete_failed", user_id=user_id, category_id=category_id, error=err.message)
            return False
        return changed > 0
