from pydantic import ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime

from app.schemas.dynamic_config import CamelModel


# ==================== Audit Log Schemas ====================

class AuditLogResponse(CamelModel):
    """Audit log entry response"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    admin_id: str
    admin_email: Optional[str] = None
    action: str
    target_type: str
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime
