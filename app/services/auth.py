from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password, verify_password
from app.models.user import AppUser


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[AppUser]:
    stmt = select(AppUser).where(AppUser.email == email.lower())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    role: str = "user",
    password: Optional[str] = None,
    name: Optional[str] = None,
) -> AppUser:
    user = AppUser(
        email=email.lower(),
        password_hash=hash_password(password) if password else None,
        name=name,
        role=role,
        is_banned=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail="E-mail já cadastrado.",
        ) from exc
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> AppUser:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")

    if user.is_banned:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Usuário banido")

    return user
