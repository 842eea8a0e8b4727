"""Tests for the Schema Manager and the Query Gateway."""

import pytest
from pydantic import BaseModel
from sqlalchemy import create_engine, inspect

from expense_tracker.core.errors import StorageError
from expense_tracker.db.gateway import Database
from expense_tracker.db.init_db import init_db


def _insert_user(db, username="alice", email="alice@example.com"):
    db.execute(
        "INSERT INTO users (username, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
        [username, email, "x", "2025-03-01T00:00:00.000Z"],
    )
    return db.fetch_one("SELECT id FROM users WHERE username = ?", [username])["id"]


class UserRow(BaseModel):
    id: int
    username: str


class TestSchemaManager:
    def test_creates_all_tables(self, engine):
        tables = set(inspect(engine).get_table_names())
        assert {"users", "categories", "expenses", "budgets"} <= tables

    def test_creates_expense_indexes(self, engine):
        names = {ix["name"] for ix in inspect(engine).get_indexes("expenses")}
        assert {"idx_expenses_user_date", "idx_expenses_user_category"} <= names

    def test_is_idempotent(self, engine, db):
        _insert_user(db)
        init_db(engine)
        init_db(engine)
        assert db.fetch_one("SELECT COUNT(*) AS c FROM users")["c"] == 1

    def test_foreign_keys_enabled(self, db):
        assert db.fetch_one("PRAGMA foreign_keys")["foreign_keys"] == 1

    def test_refuses_engine_without_foreign_keys(self):
        plain = create_engine("sqlite://")
        try:
            with pytest.raises(RuntimeError):
                init_db(plain)
            assert inspect(plain).get_table_names() == []
        finally:
            plain.dispose()

    def test_deleting_user_cascades(self, db):
        user_id = _insert_user(db)
        db.execute(
            "INSERT INTO categories (user_id, name, created_at) VALUES (?, ?, ?)",
            [user_id, "Food", "2025-03-01T00:00:00.000Z"],
        )
        category_id = db.fetch_one("SELECT id FROM categories")["id"]
        db.execute(
            """
            INSERT INTO expenses (user_id, category_id, amount, date, note, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [user_id, category_id, 10.0, "2025-03-01", None, "t", "t"],
        )

        db.execute("DELETE FROM users WHERE id = ?", [user_id])

        assert db.fetch_all("SELECT id FROM categories") == []
        assert db.fetch_all("SELECT id FROM expenses") == []

    def test_new_category_defaults_active(self, db):
        user_id = _insert_user(db)
        db.execute(
            "INSERT INTO categories (user_id, name, created_at) VALUES (?, ?, ?)",
            [user_id, "Food", "t"],
        )
        assert db.fetch_one("SELECT is_active FROM categories")["is_active"] == 1


class TestQueryGateway:
    def test_fetch_one_returns_none_when_no_match(self, db):
        assert db.fetch_one("SELECT id FROM users WHERE username = ?", ["nobody"]) is None

    def test_fetch_one_maps_to_model(self, db):
        _insert_user(db)
        row = db.fetch_one("SELECT id, username FROM users WHERE username = ?", ["alice"], model=UserRow)
        assert isinstance(row, UserRow)
        assert row.username == "alice"

    def test_fetch_all_preserves_order(self, db):
        for name in ["carol", "alice", "bob"]:
            _insert_user(db, name, f"{name}@example.com")
        rows = db.fetch_all("SELECT username FROM users ORDER BY username ASC")
        assert [r["username"] for r in rows] == ["alice", "bob", "carol"]

    def test_fetch_all_empty(self, db):
        assert db.fetch_all("SELECT id FROM users") == []

    def test_bound_values_are_never_interpreted_as_sql(self, db):
        _insert_user(db)
        hostile = "x' OR '1'='1"
        assert db.fetch_one("SELECT id FROM users WHERE username = ?", [hostile]) is None
        _insert_user(db, "robert'); DROP TABLE users;--", "bobby@example.com")
        assert db.fetch_one("SELECT COUNT(*) AS c FROM users")["c"] == 2

    def test_unique_violation_reports_constraint(self, db):
        _insert_user(db)
        with pytest.raises(StorageError) as info:
            _insert_user(db, "alice", "other@example.com")
        assert info.value.constraint == "users.username"
        assert info.value.is_unique_violation

    def test_malformed_sql_raises_storage_error(self, db):
        with pytest.raises(StorageError) as info:
            db.execute("INSERT INTO nowhere VALUES (?)", [1])
        assert not info.value.is_unique_violation

    def test_foreign_key_violation_raises_storage_error(self, db):
        with pytest.raises(StorageError):
            db.execute(
                "INSERT INTO categories (user_id, name, created_at) VALUES (?, ?, ?)",
                [999, "Food", "t"],
            )

    def test_transaction_rolls_back_on_failure(self, db):
        _insert_user(db)
        with pytest.raises(StorageError):
            with db.transaction():
                _insert_user(db, "bob", "bob@example.com")
                _insert_user(db, "bob", "bob2@example.com")

        assert db.fetch_one("SELECT id FROM users WHERE username = ?", ["bob"]) is None
        assert not db.in_transaction

    def test_transaction_commits(self, db):
        with db.transaction():
            _insert_user(db, "bob", "bob@example.com")
            _insert_user(db, "carol", "carol@example.com")
        assert db.fetch_one("SELECT COUNT(*) AS c FROM users")["c"] == 2

    def test_nested_transaction_rejected(self, db):
        with pytest.raises(StorageError):
            with db.transaction():
                with db.transaction():
                    pass

    def test_writes_are_visible_to_a_second_gateway(self, engine, db):
        _insert_user(db)
        other = Database(engine)
        assert other.fetch_one("SELECT username FROM users")["username"] == "alice"

    def test_execute_returns_changed_row_count(self, db):
        _insert_user(db)
        _insert_user(db, "bob", "bob@example.com")
        assert db.execute("UPDATE users SET email = lower(email)") == 2
        assert db.execute("DELETE FROM users WHERE username = ?", ["nobody"]) == 0

    def test_out_of_range_integer_raises_storage_error(self, db):
        with pytest.raises(StorageError):
            db.fetch_one("SELECT id FROM users WHERE id = ?", [2**70])
        with pytest.raises(StorageError):
            db.fetch_all("SELECT id FROM users WHERE id = ?", [2**70])
        with pytest.raises(StorageError):
            db.execute("DELETE FROM users WHERE id = ?", [2**70])

    def test_out_of_range_integer_inside_transaction_rolls_back(self, db):
        with pytest.raises(StorageError):
            with db.transaction():
                _insert_user(db)
                db.execute("DELETE FROM users WHERE id = ?", [2**70])
        assert db.fetch_one("SELECT COUNT(*) AS c FROM users")["c"] == 0
        assert not db.in_transaction
