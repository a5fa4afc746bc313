from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["user", "mod", "admin"]


class RegisterRequest(BaseModel):
    email: EmailStr
    invite_token: Optional[str] = Field(default=None, description="Token de convite ou token master")
    name: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    role: UserRole
    is_banned: bool = False

    class Config:
        from_attributes = True
