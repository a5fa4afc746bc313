"""
Emissor de eventos de auditoria.

Grava um AuditLog por ação relevante usando uma sessão própria, depois que a
mutação principal já foi confirmada. Falhas aqui nunca desfazem a operação de
origem: são apenas registradas no log do servidor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import utcnow
from app.models.audit_log import AuditLog
from app.models.user import AppUser

logger = logging.getLogger("ingresso.audit")

INVITE_TOKEN_CREATE = "invite_token_create"
INVITE_TOKEN_DEACTIVATE = "invite_token_deactivate"
INVITE_TOKEN_CONSUME = "invite_token_consume"
INVITE_TOKEN_RAFFLE = "invite_token_raffle"
USER_SIGNUP = "user_signup"


@dataclass(frozen=True)
class AuditActor:
    user_id: Optional[str]
    email: Optional[str]
    name: Optional[str]

    @classmethod
    def from_user(cls, user: AppUser | None) -> "AuditActor | None":
        if user is None:
            return None
        return cls(user_id=str(user.id), email=user.email, name=user.name or "Unknown")


class AuditEmitter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        actor: AuditActor | None,
        action_type: str,
        description: str,
        meta: dict[str, Any] | None = None,
        target_user_id: str | None = None,
    ) -> None:
        entry = AuditLog(
            action_type=action_type,
            actor_user_id=actor.user_id if actor else None,
            target_user_id=target_user_id or (actor.user_id if actor else None),
            actor_email=actor.email if actor else None,
            actor_name=actor.name if actor else None,
            description=description,
            meta=meta,
            performed_at=utcnow(),
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception("Falha ao registrar auditoria %s: %s", action_type, description)
