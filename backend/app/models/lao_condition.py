from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class LaoCondition(Base):
    """Condicionante: recurring compliance obligation attached to a LAO."""

    __tablename__ = "lao_conditions"

    __table_args__ = (Index("ix_lao_conditions_lao_id", "lao_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lao_id: Mapped[str] = mapped_column(String(36), ForeignKey("laos.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(512), nullable=False)

    frequency_preset: Mapped[str] = mapped_column(String(16), nullable=False, server_default="anual", default="anual")
    custom_months_interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_inspection_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"), default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
