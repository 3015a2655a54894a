from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class LaoInspection(Base):
    __tablename__ = "lao_inspections"

    __table_args__ = (
        UniqueConstraint("condition_id", "inspection_date", name="uq_lao_inspections_condition_date"),
        Index("ix_lao_inspections_lao_id", "lao_id"),
        Index("ix_lao_inspections_condition_id", "condition_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # redundant with the condition, kept for per-LAO queries
    lao_id: Mapped[str] = mapped_column(String(36), ForeignKey("laos.id"), nullable=False)
    condition_id: Mapped[str] = mapped_column(String(36), ForeignKey("lao_conditions.id"), nullable=False)
    inspection_date: Mapped[str] = mapped_column(String(10), nullable=False)
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False, server_default="manual", default="manual")
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
