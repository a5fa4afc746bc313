import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("INGRESSO_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("INGRESSO_SESSION_SECRET", "test-secret-value-123456")
os.environ.setdefault("INGRESSO_SCHEDULER_ENABLED", "false")
os.environ.setdefault("INGRESSO_LOG_LEVEL", "DEBUG")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api import deps
from app.core.security import hash_password
from app.db.base import Base
from app.models.invite_token import InviteToken, MasterInviteToken
from app.models.user import AppUser
from app.services.invite_tokens import generate_token
from main import app

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
PASSWORD = "supersecret"


class FrozenClock:
    """Relógio controlável injetado no lugar de deps.get_now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def create_sqlite_engine(url: str = "sqlite+aiosqlite:///:memory:"):
    return create_async_engine(url, future=True)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
async def session_factory():
    engine = create_sqlite_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def client(session_factory, clock):
    app.dependency_overrides[deps.get_session_factory] = lambda: session_factory
    app.dependency_overrides[deps.get_now] = clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(client):
    """Segundo cliente, sem cookie de sessão, usando os mesmos overrides."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


async def create_app_user(session_factory, email: str, role: str = "user", *, is_banned: bool = False) -> AppUser:
    async with session_factory() as session:
        user = AppUser(
            email=email,
            password_hash=hash_password(PASSWORD),
            name=email.split("@")[0].title(),
            role=role,
            is_banned=is_banned,
        )
        session.add(user)
        await session.commit()
        return user


async def login(client: AsyncClient, email: str) -> None:
    response = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200


async def add_invite_token(
    session_factory,
    *,
    uses: int = 0,
    max_uses: int = 1,
    active: bool = True,
    raffle: bool = False,
    created_at: datetime = NOW,
    expires_at: datetime | None = None,
) -> str:
    token = generate_token()
    async with session_factory() as session:
        session.add(
            InviteToken(
                token=token,
                uses=uses,
                max_uses=max_uses,
                active=active,
                raffle=raffle,
                created_at=created_at,
                expires_at=expires_at,
            )
        )
        await session.commit()
    return token


async def add_master_token(session_factory) -> str:
    token = generate_token()
    async with session_factory() as session:
        session.add(MasterInviteToken(token=token))
        await session.commit()
    return token


async def get_invite_token(session_factory, token: str) -> InviteToken | None:
    async with session_factory() as session:
        return await session.get(InviteToken, token)


@pytest.fixture
async def admin_client(client, session_factory):
    await create_app_user(session_factory, "admin@example.com", role="admin")
    await login(client, "admin@example.com")
    return client


async def raffle_rows(session_factory) -> list[InviteToken]:
    async with session_factory() as session:
        result = await session.execute(select(InviteToken).where(InviteToken.raffle.is_(True)))
        return list(result.scalars().all())
