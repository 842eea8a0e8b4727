from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from expense_tracker.models.base import Base


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("user_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"))

    name: Mapped[str] = mapped_column(Text)

    # Soft delete: inactive rows stay so old expenses keep their category name.
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text("1"))

    created_at: Mapped[str] = mapped_column(Text)
