from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func, text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class LaoRecord(Base):
    __tablename__ = "laos"

    __table_args__ = (
        Index("ix_laos_branch_id", "branch_id"),
        Index("ix_laos_lao_number", "lao_number"),
        Index("ix_laos_validity_date", "validity_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lao_number: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    empreendimento: Mapped[str] = mapped_column(String(255), nullable=False)
    branch_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("branches.id"), nullable=True)
    category: Mapped[str] = mapped_column(String(24), nullable=False, server_default="Ambiental", default="Ambiental")

    process_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fcei: Mapped[str | None] = mapped_column(String(128), nullable=True)
    codam: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # ISO dates (YYYY-MM-DD) kept as text: they sort lexically and never shift with timezones
    issue_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    validity_date: Mapped[str] = mapped_column(String(64), nullable=False)

    details: Mapped[list | None] = mapped_column(JSON, nullable=True)
    attachments: Mapped[list | None] = mapped_column(JSON, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"), default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
