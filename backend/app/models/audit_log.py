from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, JSONDocument, generate_uuid


class AuditLog(Base):
    """Audit trail of admin configuration changes"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    admin_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    # e.g. 'config.subject.added', 'config.profile_sections.reordered'
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(50), nullable=False)  # 'dynamic_config'
    target_id = Column(String(100), nullable=True)  # config key

    details = Column(JSONDocument, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    admin = relationship("User", foreign_keys=[admin_id])

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.admin_id}>"
