"""
Adapter de storage dos tokens de convite.

Concentra todo acesso ao banco do ciclo de vida dos convites. Cada operação é
limitada por `storage_timeout_seconds` (StorageTimeout) e erros do SQLAlchemy
viram StorageError, com a causa original encadeada.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import case, delete, false, or_, select, true, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import StorageError, StorageTimeout
from app.models.invite_token import InviteToken, MasterInviteToken

logger = logging.getLogger("ingresso.token_store")

T = TypeVar("T")


def eligibility_criteria(now: datetime) -> tuple[Any, ...]:
    """Predicado de elegibilidade revalidado no WHERE de toda escrita guardada."""
    return (
        InviteToken.active == true(),
        InviteToken.uses < InviteToken.max_uses,
        or_(InviteToken.expires_at.is_(None), InviteToken.expires_at > now),
    )


class InviteTokenStore:
    def __init__(self, session: AsyncSession, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = timeout if timeout is not None else settings.storage_timeout_seconds

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Timeout de %.1fs em %s", self.timeout, operation)
            raise StorageTimeout() from exc
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Erro de banco em %s: %s", operation, exc)
            raise StorageError() from exc

    async def find_by_token(self, token: str) -> InviteToken | None:
        stmt = (
            select(InviteToken)
            .where(InviteToken.token == token)
            .execution_options(populate_existing=True)
        )
        result = await self._run("find_by_token", self.session.execute(stmt))
        return result.scalar_one_or_none()

    async def find_master(self, token: str) -> MasterInviteToken | None:
        stmt = select(MasterInviteToken).where(MasterInviteToken.token == token)
        result = await self._run("find_master", self.session.execute(stmt))
        return result.scalar_one_or_none()

    async def latest_raffle(self) -> InviteToken | None:
        stmt = (
            select(InviteToken)
            .where(InviteToken.raffle == true())
            .order_by(InviteToken.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self._run("latest_raffle", self.session.execute(stmt))
        return result.scalars().first()

    async def list_tokens(self) -> list[InviteToken]:
        stmt = (
            select(InviteToken)
            .options(selectinload(InviteToken.creator))
            .order_by(InviteToken.created_at.desc())
        )
        result = await self._run("list_tokens", self.session.execute(stmt))
        return list(result.scalars().all())

    async def insert(self, row: InviteToken | MasterInviteToken) -> None:
        self.session.add(row)
        await self._run("insert", self.session.flush())

    async def delete_where(self, *criteria: Any) -> int:
        stmt = delete(InviteToken).where(*criteria).execution_options(synchronize_session=False)
        result = await self._run("delete_where", self.session.execute(stmt))
        return result.rowcount

    async def conditional_increment(self, token: str, now: datetime) -> int:
        """
        Incrementa `uses` somente se o token ainda for elegível.

        A verificação e a escrita são um único UPDATE; zero linhas afetadas
        significa que o token deixou de ser elegível.
        """
        stmt = (
            update(InviteToken)
            .where(InviteToken.token == token, *eligibility_criteria(now))
            .values(
                uses=InviteToken.uses + 1,
                active=case(
                    (InviteToken.uses + 1 >= InviteToken.max_uses, false()),
                    else_=InviteToken.active,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._run("conditional_increment", self.session.execute(stmt))
        return result.rowcount

    async def conditional_deactivate(self, token: str, now: datetime) -> int:
        stmt = (
            update(InviteToken)
            .where(InviteToken.token == token, *eligibility_criteria(now))
            .values(active=false())
            .execution_options(synchronize_session=False)
        )
        result = await self._run("conditional_deactivate", self.session.execute(stmt))
        return result.rowcount

    async def deactivate_expired(self, now: datetime) -> int:
        stmt = (
            update(InviteToken)
            .where(
                InviteToken.active == true(),
                InviteToken.expires_at.is_not(None),
                InviteToken.expires_at <= now,
            )
            .values(active=false())
            .execution_options(synchronize_session=False)
        )
        result = await self._run("deactivate_expired", self.session.execute(stmt))
        return result.rowcount

    async def commit(self) -> None:
        await self._run("commit", self.session.commit())

    async def rollback(self) -> None:
        await self.session.rollback()
