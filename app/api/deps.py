from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import utcnow
from app.core.security import current_session_user_id
from app.db.session import SessionLocal
from app.models.user import AppUser
from app.services.audit import AuditEmitter
from app.services.token_store import InviteTokenStore


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return SessionLocal


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def get_now() -> datetime:
    return utcnow()


def get_token_store(db: AsyncSession = Depends(get_db)) -> InviteTokenStore:
    return InviteTokenStore(db)


def get_audit_emitter(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AuditEmitter:
    return AuditEmitter(session_factory)


async def _load_session_user(request: Request, db: AsyncSession) -> Optional[AppUser]:
    user_id = current_session_user_id(request)
    if not user_id:
        return None
    stmt = select(AppUser).where(AppUser.id == _parse_user_id(user_id))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _parse_user_id(raw: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AppUser:
    if not current_session_user_id(request):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Autenticação necessária")

    user = await _load_session_user(request, db)
    if not user:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Usuário não encontrado")
    return user


async def get_optional_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[AppUser]:
    return await _load_session_user(request, db)


def require_roles(*roles: str):
    async def dependency(user: AppUser = Depends(get_current_user)) -> AppUser:
        if roles and user.role not in roles:
            raise HTTPException(
                status.HTTP_403_FORBIDDEN,
                detail="Permissão insuficiente",
            )
        if user.is_banned:
            raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Usuário banido")
        return user

    return dependency


require_staff = require_roles("admin", "mod")
