"""
Admin Audit Logs endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_
from typing import Optional

from app.core.config import settings
from app.core.database import get_db
from app.models import User, AuditLog
from app.modules.auth.dependencies import get_current_admin
from app.schemas.admin import AuditLogResponse
from app.schemas.common import api_response
from app.utils.pagination import PaginationParams, create_paginated_response

router = APIRouter()

SORT_COLUMNS = {
    "created_at": AuditLog.created_at,
    "createdAt": AuditLog.created_at,
    "action": AuditLog.action,
    "target_id": AuditLog.target_id,
    "targetId": AuditLog.target_id,
}


@router.get("")
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """List audit logs with filtering and pagination"""
    query = select(AuditLog, User).join(User, AuditLog.admin_id == User.id)

    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if target_type:
        conditions.append(AuditLog.target_type == target_type)
    if search:
        search_term = f"%{search}%"
        conditions.append(or_(
            AuditLog.action.ilike(search_term),
            AuditLog.target_id.ilike(search_term),
            User.email.ilike(search_term)
        ))

    if conditions:
        query = query.where(and_(*conditions))

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total = await db.scalar(count_query) or 0

    column = SORT_COLUMNS.get(sort, AuditLog.created_at)
    params = PaginationParams(page=page, limit=limit)
    query = (
        query.order_by(column.desc() if order == "desc" else column.asc())
        .offset(params.offset)
        .limit(params.limit)
    )

    result = await db.execute(query)
    rows = result.all()

    items = []
    for log, admin in rows:
        items.append(AuditLogResponse(
            id=str(log.id),
            admin_id=str(log.admin_id),
            admin_email=admin.email,
            action=log.action,
            target_type=log.target_type,
            target_id=log.target_id,
            details=log.details,
            ip_address=log.ip_address,
            created_at=log.created_at
        ).model_dump(by_alias=True))

    return api_response(create_paginated_response(items, total, page, limit))
