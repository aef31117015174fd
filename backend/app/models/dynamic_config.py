from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, JSONDocument, generate_uuid


# Collections stored as JSON arrays on the document, with their natural key
COLLECTION_KEYS = {
    "education_levels": "code",
    "subjects": "code",
    "grades": "code",
    "cities": "code",
    "districts": "code",
    "provinces": "code",
    "profile_sections": "id",
    "profile_templates": "id",
}


class DynamicConfig(Base):
    """
    Admin-editable configuration document, one row per key.

    Taxonomies, profile sections and templates are JSON arrays of plain
    dicts. Writers must assign a new list to the attribute (never mutate in
    place) so the change is flushed. ``version`` guards against lost updates.
    """
    __tablename__ = "dynamic_configs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    # Taxonomies
    education_levels = Column(JSONDocument, nullable=False, default=list)
    subjects = Column(JSONDocument, nullable=False, default=list)
    grades = Column(JSONDocument, nullable=False, default=list)

    # Location options for teacher profiles
    cities = Column(JSONDocument, nullable=False, default=list)
    districts = Column(JSONDocument, nullable=False, default=list)
    provinces = Column(JSONDocument, nullable=False, default=list)

    # Profile catalog
    profile_sections = Column(JSONDocument, nullable=False, default=list)
    profile_templates = Column(JSONDocument, nullable=False, default=list)

    # Settings
    settings = Column(JSONDocument, nullable=False, default=dict)
    general_settings = Column(JSONDocument, nullable=True)
    branding_settings = Column(JSONDocument, nullable=True)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    updated_by = Column(GUID, ForeignKey("users.id"), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def find_item(self, collection: str, natural_key: str):
        """Return the item of ``collection`` whose natural key equals ``natural_key``"""
        key_name = COLLECTION_KEYS[collection]
        for item in getattr(self, collection) or []:
            if item.get(key_name) == natural_key:
                return item
        return None

    def __repr__(self):
        return f"<DynamicConfig {self.key} v{self.version}>"
