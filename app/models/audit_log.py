import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class AuditLog(Base):
    """Evento imutável de auditoria (criação, desativação, consumo de convites, cadastro)."""

    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_action_type", "action_type"),
        Index("ix_audit_log_actor_user_id", "actor_user_id"),
        Index("ix_audit_log_performed_at", "performed_at"),
    )

    id: Mapped[str] = mapped_column(String(length=36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action_type: Mapped[str] = mapped_column(String(length=50), nullable=False)
    actor_user_id: Mapped[str | None] = mapped_column(String(length=36), nullable=True)
    target_user_id: Mapped[str | None] = mapped_column(String(length=36), nullable=True)
    actor_email: Mapped[str | None] = mapped_column(String(length=320), nullable=True)
    actor_name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
