# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.dynamic_config import DynamicConfig, COLLECTION_KEYS
from app.models.teacher_profile import TeacherProfile, TeacherStatus
from app.models.audit_log import AuditLog

__all__ = [
    # User
    "User",
    "UserRole",
    # Configuration
    "DynamicConfig",
    "COLLECTION_KEYS",
    # Teachers
    "TeacherProfile",
    "TeacherStatus",
    # Admin
    "AuditLog",
]
