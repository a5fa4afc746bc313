from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class InviteTokenCreateRequest(BaseModel):
    expires_at: Optional[datetime] = Field(default=None, description="Expiração ISO 8601; vazio = sem expiração")
    max_uses: int = Field(default=1, description="Quantidade de cadastros permitidos (1 até o limite configurado)")


class InviteTokenCreateResponse(BaseModel):
    message: str
    token: str
    max_uses: int
    expires_at: Optional[datetime] = None


class InviteTokenRequest(BaseModel):
    token: Optional[str] = None


class InviteTokenDisableResponse(BaseModel):
    success: bool = True
    message: str


class InviteTokenValidateResponse(BaseModel):
    valid: bool
    is_master_token: bool = False
    expires_at: Optional[datetime] = None
    message: Optional[str] = None


class InviteTokenResponse(BaseModel):
    token: str
    created_by: Optional[UUID] = None
    uses: int
    max_uses: int
    active: bool
    raffle: bool
    created_at: datetime
    expires_at: Optional[datetime] = None
    creator_email: Optional[str] = None
    creator_name: Optional[str] = None

    class Config:
        from_attributes = True


class InviteTokenListResponse(BaseModel):
    tokens: list[InviteTokenResponse]
    count: int
