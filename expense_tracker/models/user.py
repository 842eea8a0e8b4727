from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_tracker.models.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Case-sensitive; stored exactly as typed after trimming.
    username: Mapped[str] = mapped_column(Text, unique=True)
    # Lower-cased before storage.
    email: Mapped[str] = mapped_column(Text, unique=True)

    password_hash: Mapped[str] = mapped_column(String(255))

    # ISO-8601 timestamp string
    created_at: Mapped[str] = mapped_column(Text)
