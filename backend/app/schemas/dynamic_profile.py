from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.dynamic_config import CamelModel


class SectionLayoutEntry(CamelModel):
    """Placement of one section in a teacher's profile layout"""
    id: str = Field(..., min_length=1)
    type: str
    order: int
    visible: bool = True
    config: Dict[str, Any] = {}


class DynamicProfileUpdate(CamelModel):
    section_data: Optional[Dict[str, Any]] = None
    custom_fields: Optional[Dict[str, Any]] = None
    template_id: Optional[str] = None
    profile_layout: Optional[List[SectionLayoutEntry]] = None


class EnableDynamicProfileRequest(CamelModel):
    template_id: Optional[str] = None


class SectionValidationRequest(CamelModel):
    section_id: str
    data: Dict[str, Any] = {}
