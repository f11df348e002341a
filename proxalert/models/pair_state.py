"""Durable proximity pair state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from proxalert.db.base import Base


class PairStateRecord(Base):
    __tablename__ = "pair_states"

    pair_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_alert_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    in_range_since: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    meeting_logged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
