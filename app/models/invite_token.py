"""
Modelos de tokens de convite.

InviteToken é o convite com capacidade limitada (uses/max_uses) e expiração
opcional. No máximo uma linha pode estar marcada como raffle (índice único
parcial). MasterInviteToken é o convite de uso ilimitado, conferido apenas por
existência.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, false, func, text, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class InviteToken(Base):
    __tablename__ = "invite_token"
    __table_args__ = (
        CheckConstraint("uses >= 0", name="ck_invite_token_uses_non_negative"),
        CheckConstraint("max_uses > 0", name="ck_invite_token_max_uses_positive"),
        CheckConstraint("uses <= max_uses", name="ck_invite_token_uses_within_max"),
        Index("ix_invite_token_active", "active"),
        Index("ix_invite_token_expires_at", "expires_at"),
        Index(
            "uq_invite_token_single_raffle",
            "raffle",
            unique=True,
            postgresql_where=text("raffle"),
            sqlite_where=text("raffle"),
        ),
    )

    token: Mapped[str] = mapped_column(String(length=36), primary_key=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True,
    )
    uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    raffle: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    creator: Mapped["AppUser | None"] = relationship(
        "AppUser",
        back_populates="created_tokens",
        foreign_keys=[created_by],
    )


class MasterInviteToken(Base):
    __tablename__ = "master_invite_token"

    token: Mapped[str] = mapped_column(String(length=36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
