"""
Admin API endpoints for the TutorHub admin console.
All endpoints require an admin, except the public configuration projection.
"""
from fastapi import APIRouter

from app.api.v1.endpoints.admin import audit_logs, dynamic_config

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

# Include all admin sub-routers
admin_router.include_router(dynamic_config.router, prefix="/dynamic-config", tags=["Admin Dynamic Config"])
admin_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["Admin Audit Logs"])
