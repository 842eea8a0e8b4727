from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from expense_tracker.core.config import settings


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ships with foreign keys off; turn them on before anything else runs.
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
    finally:
        cursor.close()


def build_engine(database_url: str | None = None) -> Engine:
    url = make_url(database_url or settings.database_url)
    if url.get_backend_name() != "sqlite":
        raise ValueError(f"Unsupported database backend: {url.get_backend_name()}")

    kwargs: dict = {
        "connect_args": {"check_same_thread": False},
        "future": True,
    }
    # An in-memory database only lives as long as its connection, so keep exactly one.
    if url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine
