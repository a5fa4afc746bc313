import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.audit_log import AuditLog
from conftest import PASSWORD, add_invite_token, add_master_token, create_app_user, get_invite_token


def register_payload(email: str, token: str | None) -> dict:
    return {
        "email": email,
        "password": PASSWORD,
        "name": "Convidado",
        "invite_token": token,
    }


@pytest.mark.anyio
async def test_register_with_invite_establishes_session(client: AsyncClient, session_factory):
    token = await add_invite_token(session_factory)

    response = await client.post("/api/auth/register", json=register_payload("guest@example.com", token))
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "guest@example.com"
    assert data["role"] == "user"
    assert data["is_banned"] is False

    me_response = await client.get("/api/me")
    assert me_response.status_code == 200
    assert me_response.json()["email"] == "guest@example.com"

    row = await get_invite_token(session_factory, token)
    assert row.uses == 1
    assert row.active is False


@pytest.mark.anyio
async def test_register_records_signup_audit(client: AsyncClient, session_factory):
    token = await add_master_token(session_factory)

    response = await client.post("/api/auth/register", json=register_payload("master@example.com", token))
    assert response.status_code == 201

    async with session_factory() as session:
        result = await session.execute(select(AuditLog).where(AuditLog.action_type == "user_signup"))
        entry = result.scalar_one()

    assert entry.actor_email == "master@example.com"
    assert entry.meta["used_master_token"] is True


@pytest.mark.anyio
async def test_register_with_master_token_is_reusable(client: AsyncClient, session_factory):
    token = await add_master_token(session_factory)

    first = await client.post("/api/auth/register", json=register_payload("one@example.com", token))
    second = await client.post("/api/auth/register", json=register_payload("two@example.com", token))

    assert first.status_code == 201
    assert second.status_code == 201


@pytest.mark.anyio
async def test_register_without_invite_is_rejected(client: AsyncClient):
    response = await client.post("/api/auth/register", json=register_payload("guest@example.com", None))

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "code": "INVALID_FORMAT",
        "message": "Formato de token inválido",
    }


@pytest.mark.anyio
async def test_register_with_unknown_invite_is_rejected(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json=register_payload("guest@example.com", "A" * 36),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "TOKEN_INVALID"

    me_response = await client.get("/api/me")
    assert me_response.status_code == 401


@pytest.mark.anyio
async def test_register_duplicate_email_keeps_invite_unused(client: AsyncClient, session_factory):
    await create_app_user(session_factory, "guest@example.com")
    token = await add_invite_token(session_factory)

    response = await client.post("/api/auth/register", json=register_payload("Guest@Example.com", token))
    assert response.status_code == 409

    row = await get_invite_token(session_factory, token)
    assert row.uses == 0
    assert row.active is True


@pytest.mark.anyio
async def test_login_sets_session_and_logout_clears_it(client: AsyncClient, session_factory):
    await create_app_user(session_factory, "member@example.com")

    login_response = await client.post(
        "/api/auth/login",
        json={"email": "member@example.com", "password": PASSWORD},
    )
    assert login_response.status_code == 200
    assert (await client.get("/api/me")).status_code == 200

    logout_response = await client.post("/api/auth/logout")
    assert logout_response.status_code == 204
    assert (await client.get("/api/me")).status_code == 401


@pytest.mark.anyio
async def test_login_with_wrong_password(client: AsyncClient, session_factory):
    await create_app_user(session_factory, "member@example.com")

    response = await client.post(
        "/api/auth/login",
        json={"email": "member@example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401


@pytest.mark.anyio
async def test_login_banned_user_is_forbidden(client: AsyncClient, session_factory):
    await create_app_user(session_factory, "banned@example.com", is_banned=True)

    response = await client.post(
        "/api/auth/login",
        json={"email": "banned@example.com", "password": PASSWORD},
    )
    assert response.status_code == 403
