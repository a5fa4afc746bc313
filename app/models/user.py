import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class AppUser(Base):
    __tablename__ = "app_user"
    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'mod', 'admin')",
            name="ck_app_user_role_valid",
        ),
        Index("ix_app_user_email", "email", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(length=320), nullable=False)
    # Contas criadas via convite podem entrar só pelo provedor externo
    password_hash: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    role: Mapped[str] = mapped_column(String(length=20), nullable=False, default="user")
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    created_tokens: Mapped[list["InviteToken"]] = relationship(
        "InviteToken",
        back_populates="creator",
        foreign_keys="InviteToken.created_by",
    )
