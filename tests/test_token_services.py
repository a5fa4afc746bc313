import asyncio
import logging
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api import deps
from app.core.errors import AlreadyExhausted, AlreadyExpired, InvalidExpiration, InvalidMaxUses, StorageError, StorageTimeout
from app.db.base import Base
from app.services.audit import AuditActor, AuditEmitter
from app.services.invite_tokens import (
    consume_token,
    create_invite_token,
    disable_token,
    expire_stale_tokens,
    generate_token,
    has_injection_signature,
    redeem_token,
)
from app.services.token_store import InviteTokenStore
from main import app
from conftest import NOW, add_invite_token, create_sqlite_engine, get_invite_token

ACTOR = AuditActor(user_id=None, email="admin@example.com", name="Admin")


class SlowSession:
    async def execute(self, *args, **kwargs):
        await asyncio.sleep(1)


class BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


class LosingRaceStore(InviteTokenStore):
    """Outro consumidor sempre grava primeiro."""

    async def conditional_increment(self, token, now):
        return 0

    async def conditional_deactivate(self, token, now):
        return 0


def broken_session_factory():
    raise RuntimeError("audit database unavailable")


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_sqlite_engine(f"sqlite+aiosqlite:///{tmp_path / 'ingresso.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


async def consume_in_own_session(session_factory, token: str) -> bool:
    async with session_factory() as session:
        return await consume_token(InviteTokenStore(session), token, NOW)


@pytest.mark.anyio
@pytest.mark.parametrize(("max_uses", "attempts"), [(1, 10), (3, 12)])
async def test_parallel_consumption_never_overshoots(file_session_factory, max_uses, attempts):
    token = await add_invite_token(file_session_factory, max_uses=max_uses)

    results = await asyncio.gather(
        *(consume_in_own_session(file_session_factory, token) for _ in range(attempts))
    )

    assert results.count(True) == max_uses
    row = await get_invite_token(file_session_factory, token)
    assert row.uses == max_uses
    assert row.active is False


@pytest.mark.anyio
async def test_consume_ineligible_token_is_a_no_op(session_factory):
    token = await add_invite_token(session_factory, max_uses=2, expires_at=NOW - timedelta(seconds=1))

    async with session_factory() as session:
        assert await consume_token(InviteTokenStore(session), token, NOW) is False

    row = await get_invite_token(session_factory, token)
    assert row.uses == 0


@pytest.mark.anyio
async def test_redeem_after_losing_race_reports_max_uses(session_factory):
    token = await add_invite_token(session_factory, max_uses=2)

    async with session_factory() as session:
        store = LosingRaceStore(session)
        result = await redeem_token(store, AuditEmitter(session_factory), token, None, NOW)

    assert result.eligible is False
    assert result.reason == "MAX_USES_EXCEEDED"


@pytest.mark.anyio
async def test_disable_expiring_at_write_time_reports_expired(session_factory):
    token = await add_invite_token(session_factory, max_uses=2)

    async with session_factory() as session:
        store = LosingRaceStore(session)
        with pytest.raises(AlreadyExpired):
            await disable_token(store, AuditEmitter(session_factory), token, ACTOR, NOW)


@pytest.mark.anyio
async def test_store_operation_times_out():
    store = InviteTokenStore(SlowSession(), timeout=0.01)

    with pytest.raises(StorageTimeout):
        await store.find_by_token("A" * 36)


@pytest.mark.anyio
async def test_store_wraps_database_errors():
    store = InviteTokenStore(BrokenSession())

    with pytest.raises(StorageError) as exc_info:
        await store.find_master("A" * 36)

    assert isinstance(exc_info.value.__cause__, OperationalError)


@pytest.mark.anyio
async def test_validate_endpoint_storage_timeout(client: AsyncClient):
    app.dependency_overrides[deps.get_token_store] = lambda: InviteTokenStore(SlowSession(), timeout=0.01)

    response = await client.post("/api/invite/validate", json={"token": "A" * 36})

    assert response.status_code == 503
    assert response.json()["code"] == "STORAGE_TIMEOUT"


@pytest.mark.anyio
async def test_validate_endpoint_storage_error_hides_cause(client: AsyncClient):
    app.dependency_overrides[deps.get_token_store] = lambda: InviteTokenStore(BrokenSession())

    response = await client.post("/api/invite/validate", json={"token": "A" * 36})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "code": "STORAGE_ERROR",
        "message": "Erro no servidor, tente novamente mais tarde",
    }


@pytest.mark.anyio
async def test_audit_failure_is_logged_not_raised(caplog):
    emitter = AuditEmitter(broken_session_factory)

    with caplog.at_level(logging.ERROR, logger="ingresso.audit"):
        await emitter.record(ACTOR, "invite_token_create", "Convite criado")

    assert "Falha ao registrar auditoria invite_token_create" in caplog.text


@pytest.mark.anyio
async def test_audit_failure_does_not_undo_creation(admin_client: AsyncClient, session_factory):
    app.dependency_overrides[deps.get_audit_emitter] = lambda: AuditEmitter(broken_session_factory)

    response = await admin_client.post("/api/invite/create", json={"max_uses": 2})

    assert response.status_code == 201
    row = await get_invite_token(session_factory, response.json()["token"])
    assert row is not None
    assert row.max_uses == 2


@pytest.mark.anyio
async def test_create_invite_treats_naive_expiration_as_utc(session_factory):
    async with session_factory() as session:
        row = await create_invite_token(
            InviteTokenStore(session),
            AuditEmitter(session_factory),
            ACTOR,
            expires_at=datetime(2026, 10, 20, 12, 0),
            now=NOW,
        )

    assert row.expires_at == NOW + timedelta(days=1)


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"expires_at": NOW}, InvalidExpiration),
        ({"max_uses": 0}, InvalidMaxUses),
        ({"max_uses": 1001}, InvalidMaxUses),
    ],
)
async def test_create_invite_rejects_bad_input(session_factory, kwargs, error):
    async with session_factory() as session:
        with pytest.raises(error):
            await create_invite_token(
                InviteTokenStore(session),
                AuditEmitter(session_factory),
                ACTOR,
                now=NOW,
                **kwargs,
            )


@pytest.mark.anyio
async def test_expire_stale_tokens(session_factory):
    expired = await add_invite_token(session_factory, expires_at=NOW - timedelta(minutes=5))
    future = await add_invite_token(session_factory, expires_at=NOW + timedelta(days=1))
    unbounded = await add_invite_token(session_factory)

    async with session_factory() as session:
        count = await expire_stale_tokens(InviteTokenStore(session), NOW)

    assert count == 1
    assert (await get_invite_token(session_factory, expired)).active is False
    assert (await get_invite_token(session_factory, future)).active is True
    assert (await get_invite_token(session_factory, unbounded)).active is True


def test_generate_token_shape():
    tokens = {generate_token() for _ in range(50)}

    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 36
        assert token == token.upper()
        assert not has_injection_signature(token)


@pytest.mark.parametrize(
    ("candidate", "expected"),
    [
        ("0F3C2A9E-6B1D-4E8A-9C57-2D4B8E1F0A63", False),
        ("drop table invite_token", True),
        ("abc' --", True),
        ("x AND 2=2", True),
        ("WAITFOR DELAY '0:0:5'", True),
        ("sleep(10)", True),
    ],
)
def test_has_injection_signature(candidate, expected):
    assert has_injection_signature(candidate) is expected


@pytest.mark.anyio
async def test_disable_after_last_use_reports_exhausted(session_factory):
    token = await add_invite_token(session_factory, max_uses=2)

    async with session_factory() as session:
        store = InviteTokenStore(session)
        assert await consume_token(store, token, NOW) is True
        assert await consume_token(store, token, NOW) is True

        with pytest.raises(AlreadyExhausted):
            await disable_token(store, AuditEmitter(session_factory), token, ACTOR, NOW)


@pytest.mark.anyio
async def test_disable_returns_nothing(session_factory):
    token = await add_invite_token(session_factory, max_uses=2)

    async with session_factory() as session:
        result = await disable_token(InviteTokenStore(session), AuditEmitter(session_factory), token, ACTOR, NOW)

    assert result is None
    assert (await get_invite_token(session_factory, token)).active is False
