from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, JSONDocument, generate_uuid


class TeacherStatus(str, enum.Enum):
    """Approval workflow status"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TeacherProfile(Base):
    """
    Teacher profile created during onboarding.

    The fixed columns are the legacy profile; ``dynamic_profile`` holds
    ``{sectionData, customFields, lastUpdated, templateId}`` once the teacher
    writes dynamic data, and ``profile_layout`` the per-teacher section
    placement copied from a template or edited directly.
    """
    __tablename__ = "teacher_profiles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(TeacherStatus), default=TeacherStatus.PENDING, nullable=False, index=True)

    # Legacy profile fields
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    tagline = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    image = Column(Text, nullable=True)
    subjects = Column(JSONDocument, nullable=False, default=list)
    grades = Column(JSONDocument, nullable=False, default=list)
    education_levels = Column(JSONDocument, nullable=True)  # [{level, subjects, grades}]
    education_level = Column(String(50), nullable=True)  # single-level profiles
    experience = Column(Integer, nullable=True)
    experience_level = Column(String(50), nullable=True)
    qualifications = Column(JSONDocument, nullable=True)
    teaching_modes = Column(JSONDocument, nullable=True)
    pricing = Column(JSONDocument, nullable=True)  # {hourlyRate, monthlyFee, groupClassPrice}
    location = Column(JSONDocument, nullable=True)
    contact = Column(JSONDocument, nullable=True)
    languages = Column(JSONDocument, nullable=True)
    online_platforms = Column(JSONDocument, nullable=True)

    # Dynamic profile
    uses_dynamic_profile = Column(Boolean, default=False, nullable=False)
    dynamic_profile = Column(JSONDocument, nullable=True)
    profile_layout = Column(JSONDocument, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="teacher_profile")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<TeacherProfile {self.first_name} {self.last_name}>"
