from __future__ import annotations

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.audit_log import AuditLog
from app.models.user import AppUser
from app.schemas.audit_log import AuditLogListResponse, AuditLogResponse, PaginationInfo, SortOrder

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = Query(None, description="Busca em descrição, nome e e-mail do ator"),
    action_type: Optional[str] = Query(None),
    actor_user_id: Optional[str] = Query(None),
    sort_order: SortOrder = Query("desc"),
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.require_staff),
) -> AuditLogListResponse:
    """
    Lista eventos de auditoria com paginação e filtros.

    **Permissão:** admin, mod
    """
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                AuditLog.description.ilike(pattern),
                AuditLog.actor_name.ilike(pattern),
                AuditLog.actor_email.ilike(pattern),
            )
        )
    if action_type:
        filters.append(AuditLog.action_type == action_type)
    if actor_user_id:
        filters.append(AuditLog.actor_user_id == actor_user_id)

    total = int((await db.execute(select(func.count(AuditLog.id)).where(*filters))).scalar_one())

    ordering = AuditLog.performed_at.asc() if sort_order == "asc" else AuditLog.performed_at.desc()
    stmt = (
        select(AuditLog)
        .where(*filters)
        .order_by(ordering)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    logs = result.scalars().all()

    total_pages = math.ceil(total / limit) if total else 0
    return AuditLogListResponse(
        audit_logs=[AuditLogResponse.model_validate(log) for log in logs],
        pagination=PaginationInfo(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )
