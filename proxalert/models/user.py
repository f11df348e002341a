"""User model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from proxalert.db.base import Base


class User(Base):
    """A user as provisioned by the identity provider. Never hard-deleted."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ghost_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    battery_level: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
