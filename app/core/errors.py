"""
Erros do ciclo de vida dos convites.

Cada erro carrega um código legível por máquina e o status HTTP correspondente.
Erros de formato/estado são resultados esperados; erros de storage são logados
no servidor e devolvidos como mensagem genérica.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("ingresso.errors")


class InviteTokenError(Exception):
    code = "INVITE_TOKEN_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Erro no convite"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidFormat(InviteTokenError):
    code = "INVALID_FORMAT"
    default_message = "Formato de token inválido"


class TokenInvalid(InviteTokenError):
    code = "TOKEN_INVALID"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Token inválido"


class TokenExpired(InviteTokenError):
    code = "TOKEN_EXPIRED"
    status_code = status.HTTP_410_GONE
    default_message = "Token expirado"


class MaxUsesExceeded(InviteTokenError):
    code = "MAX_USES_EXCEEDED"
    status_code = status.HTTP_410_GONE
    default_message = "Token atingiu o limite de usos"


class TokenNotFound(InviteTokenError):
    code = "TOKEN_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Token não encontrado"


class AlreadyDisabled(InviteTokenError):
    code = "ALREADY_DISABLED"
    default_message = "Este token já está desativado"


class AlreadyExhausted(InviteTokenError):
    code = "ALREADY_EXHAUSTED"
    default_message = "Este token já atingiu o limite de usos"


class AlreadyExpired(InviteTokenError):
    code = "ALREADY_EXPIRED"
    default_message = "Este token já expirou"


class InvalidExpiration(InviteTokenError):
    code = "INVALID_EXPIRATION"
    default_message = "A data de expiração deve estar no futuro"


class InvalidMaxUses(InviteTokenError):
    code = "INVALID_MAX_USES"
    default_message = "Quantidade máxima de usos fora do limite permitido"


class StorageError(InviteTokenError):
    code = "STORAGE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Erro no servidor, tente novamente mais tarde"


class StorageTimeout(StorageError):
    code = "STORAGE_TIMEOUT"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Serviço temporariamente indisponível, tente novamente mais tarde"


ERRORS_BY_CODE: dict[str, type[InviteTokenError]] = {
    error.code: error
    for error in (
        InvalidFormat,
        TokenInvalid,
        TokenExpired,
        MaxUsesExceeded,
        TokenNotFound,
        AlreadyDisabled,
        AlreadyExhausted,
        AlreadyExpired,
        InvalidExpiration,
        InvalidMaxUses,
        StorageError,
        StorageTimeout,
    )
}


def error_payload(exc: InviteTokenError) -> dict[str, object]:
    return {"success": False, "code": exc.code, "message": exc.message}


async def invite_token_error_handler(request: Request, exc: InviteTokenError) -> JSONResponse:
    if isinstance(exc, StorageError):
        # A causa original fica só no log do servidor
        logger.error(
            "Falha de storage em %s %s",
            request.method,
            request.url.path,
            exc_info=exc.__cause__ or exc,
        )
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InviteTokenError, invite_token_error_handler)
