"""
Audit trail for admin configuration changes.
"""
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AuditLog, User


def record_audit(
    db: AsyncSession,
    admin: User,
    action: str,
    target_id: Optional[str],
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    target_type: str = "dynamic_config",
) -> AuditLog:
    """Add an AuditLog row to the current transaction; the caller commits"""
    log = AuditLog(
        admin_id=str(admin.id),
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details or {},
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    db.add(log)
    return log
