"""
Router de convites.

- Admin/mod cria, lista e desativa convites
- Público valida (e consome) um convite
- Público sorteia o token raffle do ciclo (resposta em texto puro)
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api import deps
from app.core.errors import InvalidFormat
from app.models.user import AppUser
from app.schemas.invite_token import (
    InviteTokenCreateRequest,
    InviteTokenCreateResponse,
    InviteTokenDisableResponse,
    InviteTokenListResponse,
    InviteTokenRequest,
    InviteTokenResponse,
    InviteTokenValidateResponse,
)
from app.services.audit import AuditActor, AuditEmitter
from app.services.invite_tokens import (
    create_invite_token,
    disable_token,
    draw_raffle_token,
    list_invite_tokens,
    redeem_token,
    rejection_error,
)
from app.services.scheduler import get_scheduler_status
from app.services.token_store import InviteTokenStore

router = APIRouter(prefix="/invite", tags=["invite"])
logger = logging.getLogger("ingresso.api.invite")


@router.get("", response_model=InviteTokenListResponse)
async def list_tokens(
    store: InviteTokenStore = Depends(deps.get_token_store),
    current_user: AppUser = Depends(deps.require_staff),
) -> InviteTokenListResponse:
    tokens = await list_invite_tokens(store)
    items = []
    for token in tokens:
        item = InviteTokenResponse.model_validate(token)
        if token.creator is not None:
            item.creator_email = token.creator.email
            item.creator_name = token.creator.name
        items.append(item)
    return InviteTokenListResponse(tokens=items, count=len(items))


@router.post("/create", response_model=InviteTokenCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_token(
    payload: InviteTokenCreateRequest,
    store: InviteTokenStore = Depends(deps.get_token_store),
    audit: AuditEmitter = Depends(deps.get_audit_emitter),
    now: datetime = Depends(deps.get_now),
    current_user: AppUser = Depends(deps.require_staff),
) -> InviteTokenCreateResponse:
    """
    Cria um convite para cadastro.

    **Permissão:** admin, mod
    """
    row = await create_invite_token(
        store,
        audit,
        AuditActor.from_user(current_user),
        expires_at=payload.expires_at,
        max_uses=payload.max_uses,
        now=now,
    )
    return InviteTokenCreateResponse(
        message="Convite criado com sucesso",
        token=row.token,
        max_uses=row.max_uses,
        expires_at=row.expires_at,
    )


@router.post("/disable", response_model=InviteTokenDisableResponse)
async def disable(
    payload: InviteTokenRequest,
    store: InviteTokenStore = Depends(deps.get_token_store),
    audit: AuditEmitter = Depends(deps.get_audit_emitter),
    now: datetime = Depends(deps.get_now),
    current_user: AppUser = Depends(deps.require_staff),
) -> InviteTokenDisableResponse:
    """
    Desativa um convite ainda utilizável.

    **Permissão:** admin, mod
    """
    if not payload.token:
        raise InvalidFormat("Token é obrigatório")

    await disable_token(store, audit, payload.token, AuditActor.from_user(current_user), now)
    return InviteTokenDisableResponse(message="Convite desativado com sucesso")


@router.post("/validate", response_model=InviteTokenValidateResponse)
async def validate(
    payload: InviteTokenRequest,
    store: InviteTokenStore = Depends(deps.get_token_store),
    audit: AuditEmitter = Depends(deps.get_audit_emitter),
    now: datetime = Depends(deps.get_now),
    current_user: AppUser | None = Depends(deps.get_optional_current_user),
):
    """
    Valida o convite e registra um uso.

    Tokens master são aceitos sem contagem de uso.
    """
    result = await redeem_token(store, audit, payload.token, AuditActor.from_user(current_user), now)
    if not result.eligible:
        error = rejection_error(result)
        return JSONResponse(
            status_code=error.status_code,
            content={"valid": False, "code": error.code, "message": error.message},
        )

    return InviteTokenValidateResponse(
        valid=True,
        is_master_token=result.is_master,
        expires_at=result.expires_at,
        message="Token validado com sucesso",
    )


@router.post("/raffle", response_class=PlainTextResponse)
async def raffle(
    store: InviteTokenStore = Depends(deps.get_token_store),
    audit: AuditEmitter = Depends(deps.get_audit_emitter),
    now: datetime = Depends(deps.get_now),
) -> PlainTextResponse:
    """
    Devolve apenas o token do ciclo em texto puro, ou corpo vazio.

    Qualquer falha vira corpo vazio com status 500.
    """
    try:
        token = await draw_raffle_token(store, audit, now)
    except Exception:
        logger.exception("Erro no sorteio do token raffle")
        return PlainTextResponse("", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return PlainTextResponse(token)


@router.get("/scheduler/status")
async def scheduler_status(
    current_user: AppUser = Depends(deps.require_staff),
) -> dict:
    """
    Retorna status dos jobs de rotação do raffle e expiração de convites.

    **Permissão:** admin, mod
    """
    return get_scheduler_status()
