"""Query Gateway: the only place SQL text meets the embedded store.

Every caller passes values through positional ``?`` parameters; nothing
supplied by a user is ever formatted into the statement text.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar, overload

import structlog
from pydantic import BaseModel
from sqlalchemy import exc
from sqlalchemy.engine import Connection, Engine, RowMapping

from expense_tracker.core.errors import StorageError

logger = structlog.get_logger(__name__)

Param = str | int | float | None
Params = Sequence[Param]

RecordT = TypeVar("RecordT", bound=BaseModel)

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w.]+)")

# Largest value an SQLite INTEGER column (and so any row id) can hold.
SQLITE_MAX_INTEGER = 2**63 - 1

# The sqlite3 driver raises OverflowError, unwrapped, for ints it cannot bind.
_STORAGE_FAILURES = (exc.SQLAlchemyError, OverflowError)


def _to_storage_error(err: Exception) -> StorageError:
    orig = getattr(err, "orig", None)
    detail = str(orig) if orig is not None else str(err)
    match = _UNIQUE_RE.search(detail)
    return StorageError(detail, constraint=match.group(1) if match else None)


class Database:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._local = threading.local()

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "conn", None) is not None

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        # engine.begin() commits when the block exits cleanly and rolls back otherwise.
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run several statements atomically: BEGIN, then COMMIT or ROLLBACK."""

        if self.in_transaction:
            raise StorageError("Nested transactions are not supported")
        try:
            with self.engine.begin() as conn:
                self._local.conn = conn
                try:
                    yield
                finally:
                    self._local.conn = None
        except _STORAGE_FAILURES as err:
            raise _to_storage_error(err) from err

    def _run(self, conn: Connection, sql: str, params: Params):
        return conn.exec_driver_sql(sql, tuple(params))

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run a statement and return the number of rows it changed."""

        try:
            with self._connection() as conn:
                changed = self._run(conn, sql, params).rowcount
        except _STORAGE_FAILURES as err:
            raise _to_storage_error(err) from err
        return changed

    @overload
    def fetch_one(self, sql: str, params: Params = ..., *, model: None = ...) -> RowMapping | None: ...

    @overload
    def fetch_one(self, sql: str, params: Params = ..., *, model: type[RecordT]) -> RecordT | None: ...

    def fetch_one(self, sql: str, params: Params = (), *, model: type[BaseModel] | None = None) -> Any:
        try:
            with self._connection() as conn:
                row = self._run(conn, sql, params).mappings().first()
        except _STORAGE_FAILURES as err:
            raise _to_storage_error(err) from err

        if row is None:
            return None
        if model is not None:
            return model.model_validate(dict(row))
        return row

    @overload
    def fetch_all(self, sql: str, params: Params = ..., *, model: None = ...) -> list[RowMapping]: ...

    @overload
    def fetch_all(self, sql: str, params: Params = ..., *, model: type[RecordT]) -> list[RecordT]: ...

    def fetch_all(self, sql: str, params: Params = (), *, model: type[BaseModel] | None = None) -> list[Any]:
        try:
            with self._connection() as conn:
                rows = self._run(conn, sql, params).mappings().all()
        except _STORAGE_FAILURES as err:
            raise _to_storage_error(err) from err

        if model is not None:
            return [model.model_validate(dict(r)) for r in rows]
        return list(rows)
