"""Shared fixtures: an in-memory store with the schema applied, plus services over it."""

import pytest
from fastapi.testclient import TestClient

from expense_tracker.core.config import get_settings
from expense_tracker.core.session_store import MemorySessionStore
from expense_tracker.db.gateway import Database
from expense_tracker.db.init_db import init_db
from expense_tracker.db.session import build_engine
from expense_tracker.main import create_app
from expense_tracker.services.auth import AuthService
from expense_tracker.services.categories import CategoryService
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.stats import StatsService


@pytest.fixture
def settings(tmp_path):
    return get_settings(
        database_url="sqlite://",
        session_file=str(tmp_path / "session.json"),
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    return Database(engine)


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def auth(db, store, settings):
    return AuthService(db, store, settings=settings)


@pytest.fixture
def categories(db, settings):
    return CategoryService(db, settings)


@pytest.fixture
def expenses(db):
    return ExpenseService(db)


@pytest.fixture
def stats(db):
    return StatsService(db)


@pytest.fixture
def user(auth):
    return auth.register("alice", "alice@example.com", "secret1")


@pytest.fixture
def other_user(auth):
    return auth.register("bob", "bob@example.com", "secret2")


@pytest.fixture
def client(settings, store):
    app = create_app(settings, engine=build_engine("sqlite://"), store=store)
    with TestClient(app) as c:
        yield c
