from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.security import clear_session, establish_session
from app.models.user import AppUser
from app.schemas.auth import LoginRequest, RegisterRequest, UserResponse
from app.services import audit as audit_events
from app.services.audit import AuditActor, AuditEmitter
from app.services.auth import authenticate_user, create_user, get_user_by_email
from app.services.invite_tokens import redeem_token, rejection_error
from app.services.token_store import InviteTokenStore

router = APIRouter(prefix="/auth", tags=["auth"])


def build_user_response(user: AppUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_banned=user.is_banned,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
    store: InviteTokenStore = Depends(deps.get_token_store),
    audit: AuditEmitter = Depends(deps.get_audit_emitter),
    now: datetime = Depends(deps.get_now),
) -> UserResponse:
    """
    Cadastro condicionado a um convite.

    O e-mail é conferido antes de consumir o convite para não queimar um uso
    em um cadastro que falharia.
    """
    if await get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="E-mail já cadastrado")

    result = await redeem_token(store, audit, payload.invite_token, None, now)
    if not result.eligible:
        raise rejection_error(result)

    user = await create_user(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
    )
    await db.commit()
    await db.refresh(user)

    await audit.record(
        AuditActor.from_user(user),
        audit_events.USER_SIGNUP,
        f"Novo usuário cadastrado usando {'token master' if result.is_master else 'token'}",
        {
            "user_id": str(user.id),
            "email": user.email,
            "name": user.name,
            "used_master_token": result.is_master,
        },
    )

    establish_session(request, str(user.id))
    return build_user_response(user)


@router.post("/login", response_model=UserResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
) -> UserResponse:
    user = await authenticate_user(db, payload.email, payload.password)
    establish_session(request, str(user.id))
    return build_user_response(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def logout(request: Request) -> Response:
    clear_session(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
