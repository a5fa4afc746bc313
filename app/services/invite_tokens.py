"""
Ciclo de vida dos tokens de convite.

Validação, consumo atômico, criação administrativa, desativação e rotação do
token de sorteio (raffle). Toda coordenação acontece no banco: o consumo e a
desativação são UPDATEs guardados que revalidam a elegibilidade no WHERE.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import true
from sqlalchemy.exc import IntegrityError

from app.core.clock import ensure_utc, utcnow
from app.core.config import settings
from app.core.errors import (
    ERRORS_BY_CODE,
    AlreadyDisabled,
    AlreadyExhausted,
    AlreadyExpired,
    InvalidExpiration,
    InvalidFormat,
    InvalidMaxUses,
    InviteTokenError,
    MaxUsesExceeded,
    TokenExpired,
    TokenInvalid,
    TokenNotFound,
)
from app.models.invite_token import InviteToken
from app.services import audit as audit_events
from app.services.audit import AuditActor, AuditEmitter
from app.services.token_store import InviteTokenStore

logger = logging.getLogger("ingresso.invite_tokens")

# Verificação independente do acesso parametrizado ao banco
INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|UNION|EXEC|ALTER|CREATE|TRUNCATE)\b", re.IGNORECASE),
    re.compile(r"('|\"|;|--|/\*|\*/|\\\*|\\-)"),
    re.compile(r"\b(OR|AND)\b\s+\d+\s*=\s*\d+", re.IGNORECASE),
    re.compile(r"\b(WAITFOR|DELAY)\b\s+", re.IGNORECASE),
    re.compile(r"\b(SLEEP)\b\s*\(\s*\d+\s*\)", re.IGNORECASE),
)


@dataclass
class TokenValidation:
    eligible: bool
    is_master: bool = False
    reason: Optional[str] = None
    token: Optional[InviteToken] = None

    @property
    def expires_at(self) -> datetime | None:
        return ensure_utc(self.token.expires_at) if self.token else None


def generate_token(length: int | None = None) -> str:
    """Gera um token opaco em maiúsculas baseado em UUID4."""
    length = length or settings.invite_token_length
    value = str(uuid.uuid4()).upper()
    while len(value) < length:
        value += str(uuid.uuid4()).upper()
    return value[:length]


def has_injection_signature(candidate: str) -> bool:
    return any(pattern.search(candidate) for pattern in INJECTION_PATTERNS)


def is_eligible(row: InviteToken, now: datetime) -> bool:
    expires_at = ensure_utc(row.expires_at)
    return bool(row.active) and row.uses < row.max_uses and (expires_at is None or expires_at > now)


async def validate_token(
    store: InviteTokenStore,
    candidate: str | None,
    now: datetime | None = None,
) -> TokenValidation:
    """Classifica o candidato sem efeitos colaterais."""
    now = now or utcnow()

    if not candidate or len(candidate) != settings.invite_token_length or has_injection_signature(candidate):
        return TokenValidation(eligible=False, reason=InvalidFormat.code)

    row = await store.find_by_token(candidate)
    if row is not None:
        if row.uses >= row.max_uses:
            return TokenValidation(eligible=False, reason=MaxUsesExceeded.code, token=row)
        if not row.active:
            return TokenValidation(eligible=False, reason=TokenExpired.code, token=row)
        expires_at = ensure_utc(row.expires_at)
        if expires_at is not None and expires_at <= now:
            return TokenValidation(eligible=False, reason=TokenExpired.code, token=row)
        return TokenValidation(eligible=True, token=row)

    master = await store.find_master(candidate)
    if master is None:
        return TokenValidation(eligible=False, reason=TokenInvalid.code)
    return TokenValidation(eligible=True, is_master=True)


def rejection_error(validation: TokenValidation) -> InviteTokenError:
    """Converte o motivo de inelegibilidade no erro correspondente (status + mensagem)."""
    error_cls = ERRORS_BY_CODE.get(validation.reason or "", TokenInvalid)
    row = validation.token
    if error_cls is MaxUsesExceeded and row is not None:
        return MaxUsesExceeded(f"Token atingiu o limite de usos ({row.uses}/{row.max_uses})")
    if error_cls is TokenExpired and row is not None and row.active and row.expires_at is not None:
        return TokenExpired(f"Token expirou em {ensure_utc(row.expires_at).date().isoformat()}")
    return error_cls()


async def consume_token(store: InviteTokenStore, token: str, now: datetime | None = None) -> bool:
    """Registra um uso do token; False quando ele deixou de ser elegível."""
    now = now or utcnow()
    affected = await store.conditional_increment(token, now)
    if affected == 0:
        return False
    await store.commit()
    return True


async def redeem_token(
    store: InviteTokenStore,
    audit: AuditEmitter,
    candidate: str | None,
    actor: AuditActor | None = None,
    now: datetime | None = None,
) -> TokenValidation:
    """
    Valida e consome o token numa única chamada.

    Usado pelo endpoint público de validação, pelo cadastro e pelo console
    autenticado; muda apenas o ator registrado na auditoria. Tokens master são
    aceitos sem incremento.
    """
    now = now or utcnow()
    validation = await validate_token(store, candidate, now)
    if not validation.eligible or validation.is_master:
        return validation

    if not await consume_token(store, candidate, now):
        # Perdeu a corrida para outro consumidor entre a leitura e a escrita
        retry = await validate_token(store, candidate, now)
        if retry.eligible:
            return TokenValidation(eligible=False, reason=MaxUsesExceeded.code, token=retry.token)
        return retry

    row = await store.find_by_token(candidate)
    await audit.record(
        actor,
        audit_events.INVITE_TOKEN_CONSUME,
        f"Token ({candidate}) utilizado por {actor.email if actor else 'visitante anônimo'}",
        {
            "token": candidate,
            "uses": row.uses if row else None,
            "max_uses": row.max_uses if row else None,
            "deactivated": not row.active if row else None,
            "consumed_at": now.isoformat(),
        },
    )
    return TokenValidation(eligible=True, token=row)


async def create_invite_token(
    store: InviteTokenStore,
    audit: AuditEmitter,
    actor: AuditActor,
    *,
    expires_at: datetime | None = None,
    max_uses: int = 1,
    now: datetime | None = None,
) -> InviteToken:
    now = now or utcnow()
    expires_at = ensure_utc(expires_at)
    if expires_at is not None and expires_at <= now:
        raise InvalidExpiration()
    if not 1 <= max_uses <= settings.invite_max_uses_limit:
        raise InvalidMaxUses(
            f"max_uses deve estar entre 1 e {settings.invite_max_uses_limit}"
        )

    row = InviteToken(
        token=generate_token(),
        created_by=uuid.UUID(actor.user_id) if actor.user_id else None,
        uses=0,
        max_uses=max_uses,
        active=True,
        raffle=False,
        created_at=now,
        expires_at=expires_at,
    )
    await store.insert(row)
    await store.commit()

    await audit.record(
        actor,
        audit_events.INVITE_TOKEN_CREATE,
        f"Usuário {actor.email} criou o convite: {row.token}",
        {
            "token": row.token,
            "max_uses": max_uses,
            "expires_at": expires_at.isoformat() if expires_at else None,
        },
    )
    return row


def _ensure_disableable(row: InviteToken | None, now: datetime) -> InviteToken:
    if row is None:
        raise TokenNotFound()
    if row.uses >= row.max_uses:
        raise AlreadyExhausted()
    if not row.active:
        raise AlreadyDisabled()
    expires_at = ensure_utc(row.expires_at)
    if expires_at is not None and expires_at < now:
        raise AlreadyExpired()
    return row


async def disable_token(
    store: InviteTokenStore,
    audit: AuditEmitter,
    token: str,
    actor: AuditActor | None,
    now: datetime | None = None,
) -> None:
    """Desativa um token ainda elegível (ação administrativa)."""
    now = now or utcnow()
    _ensure_disableable(await store.find_by_token(token), now)

    affected = await store.conditional_deactivate(token, now)
    if affected == 0:
        _ensure_disableable(await store.find_by_token(token), now)
        # Expirou exatamente no instante da escrita
        raise AlreadyExpired()
    await store.commit()

    logger.info("Convite %s desativado por %s", token, actor.email if actor else "sistema")
    await audit.record(
        actor,
        audit_events.INVITE_TOKEN_DEACTIVATE,
        f"Usuário {actor.email if actor else 'sistema'} desativou o convite: {token}",
        {"token": token, "deactivated_at": now.isoformat()},
    )


async def list_invite_tokens(store: InviteTokenStore) -> list[InviteToken]:
    return await store.list_tokens()


def _raffle_cycle() -> timedelta:
    return timedelta(hours=settings.raffle_cycle_hours)


def _current_cycle_token(row: InviteToken | None, now: datetime) -> str | None:
    """Token do ciclo vigente: None se não há ciclo aberto, "" se já foi usado."""
    if row is None or now - ensure_utc(row.created_at) >= _raffle_cycle():
        return None
    return row.token if is_eligible(row, now) else ""


async def draw_raffle_token(
    store: InviteTokenStore,
    audit: AuditEmitter,
    now: datetime | None = None,
) -> str:
    """
    Sorteio público: no máximo um token raffle por ciclo de 24 horas.

    - dentro do ciclo e ainda elegível: devolve o mesmo token
    - dentro do ciclo e já consumido: devolve string vazia
    - sem token ou ciclo encerrado: apaga o anterior e emite um novo
    """
    now = now or utcnow()
    current = _current_cycle_token(await store.latest_raffle(), now)
    if current is not None:
        return current

    cycle = _raffle_cycle()
    row = InviteToken(
        token=generate_token(),
        created_by=None,
        uses=0,
        max_uses=1,
        active=True,
        raffle=True,
        created_at=now,
        expires_at=now + cycle,
    )
    try:
        await store.delete_where(InviteToken.raffle == true())
        await store.insert(row)
        await store.commit()
    except IntegrityError:
        # Outra requisição rotacionou primeiro; o índice único garante um só raffle
        await store.rollback()
        logger.info("Rotação concorrente do raffle detectada; usando o token vencedor")
        return _current_cycle_token(await store.latest_raffle(), now) or ""

    logger.info("Novo token raffle emitido, expira em %s", row.expires_at.isoformat())
    await audit.record(
        None,
        audit_events.INVITE_TOKEN_RAFFLE,
        f"Token raffle ({row.token}) emitido pelo sistema",
        {
            "token": row.token,
            "created_at": now.isoformat(),
            "expires_at": row.expires_at.isoformat(),
        },
    )
    return row.token


async def expire_stale_tokens(store: InviteTokenStore, now: datetime | None = None) -> int:
    """Marca como inativos os tokens cuja expiração já passou."""
    now = now or utcnow()
    affected = await store.deactivate_expired(now)
    await store.commit()
    return affected
