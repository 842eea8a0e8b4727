from __future__ import annotations

import structlog
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from expense_tracker.models.base import Base
from expense_tracker.models.budget import Budget
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense
from expense_tracker.models.user import User

logger = structlog.get_logger(__name__)

# Imported for their side effect of registering tables on Base.metadata.
_TABLES = (User, Category, Expense, Budget)


def init_db(engine: Engine) -> None:
    """Create tables and indexes that do not exist yet.

    Safe to call on every start. Errors propagate: the app cannot run without
    its store, so startup must abort.
    """

    with engine.begin() as conn:
        fk_enabled = conn.exec_driver_sql("PRAGMA foreign_keys").scalar()
        if not fk_enabled:
            raise RuntimeError("SQLite foreign key enforcement is off; build the engine with build_engine()")

        Base.metadata.create_all(conn, checkfirst=True)

    tables = sorted(inspect(engine).get_table_names())
    logger.info("schema_initialized", tables=tables)
