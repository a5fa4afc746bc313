from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: str
    action_type: str
    actor_user_id: Optional[str] = None
    target_user_id: Optional[str] = None
    actor_email: Optional[str] = None
    actor_name: Optional[str] = None
    description: str
    meta: Optional[dict[str, Any]] = None
    performed_at: datetime

    class Config:
        from_attributes = True


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class AuditLogListResponse(BaseModel):
    audit_logs: list[AuditLogResponse]
    pagination: PaginationInfo


SortOrder = Literal["asc", "desc"]
