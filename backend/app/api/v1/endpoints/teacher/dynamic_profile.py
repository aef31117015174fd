"""
Teacher Dynamic Profile endpoints.
"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.models import User
from app.modules.auth.dependencies import get_current_teacher
from app.schemas.common import api_response
from app.schemas.dynamic_profile import (
    DynamicProfileUpdate,
    EnableDynamicProfileRequest,
    SectionLayoutEntry,
    SectionValidationRequest,
)
from app.services.dynamic_profile_service import DynamicProfileService

router = APIRouter()


def get_profile_service(db: AsyncSession = Depends(get_db)) -> DynamicProfileService:
    return DynamicProfileService(db)


@router.get("/config")
async def get_dynamic_profile_config(
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Public configuration the profile editor is built from"""
    config = await service.get_dynamic_profile_config()
    await db.commit()
    return api_response(config)


@router.get("")
async def get_dynamic_profile(
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Own profile; legacy teachers see their fields projected into sections"""
    result = await service.get_dynamic_profile(str(current_teacher.id))
    await db.commit()
    return api_response(result)


@router.put("")
async def update_dynamic_profile(
    update_data: DynamicProfileUpdate,
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Merge section data and custom fields per section id"""
    profile = await service.update_dynamic_profile(str(current_teacher.id), update_data)
    await db.commit()
    return api_response(service.profile_view(profile), "Profile updated successfully")


@router.post("/enable")
async def enable_dynamic_profile(
    body: Optional[EnableDynamicProfileRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    template_id = body.template_id if body else None
    profile = await service.enable_dynamic_profile(str(current_teacher.id), template_id)
    await db.commit()
    return api_response(service.profile_view(profile), "Dynamic profile enabled")


@router.post("/disable")
async def disable_dynamic_profile(
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Stored dynamic data is kept"""
    profile = await service.disable_dynamic_profile(str(current_teacher.id))
    await db.commit()
    return api_response(service.profile_view(profile), "Dynamic profile disabled")


@router.put("/layout")
async def update_profile_layout(
    layout: List[SectionLayoutEntry] = Body(...),
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    profile = await service.update_profile_layout(str(current_teacher.id), layout)
    await db.commit()
    return api_response(service.profile_view(profile), "Layout updated successfully")


@router.get("/templates/{template_id}")
async def get_profile_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    template = await service.get_profile_template(template_id)
    await db.commit()
    return api_response(template)


@router.post("/apply-template/{template_id}")
async def apply_profile_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Copy the template's section placement into the teacher's layout"""
    profile = await service.apply_profile_template(str(current_teacher.id), template_id)
    await db.commit()
    return api_response(service.profile_view(profile), "Template applied successfully")


@router.get("/form")
async def get_profile_form(
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Ordered sections and controls to render the profile form"""
    plan = await service.get_form_plan(str(current_teacher.id))
    await db.commit()
    return api_response(plan)


@router.post("/validate")
async def validate_section(
    payload: SectionValidationRequest,
    db: AsyncSession = Depends(get_db),
    service: DynamicProfileService = Depends(get_profile_service),
    current_teacher: User = Depends(get_current_teacher)
):
    """Check one section's data without saving it"""
    cleaned = await service.validate_section_data(payload.section_id, payload.data)
    await db.commit()
    return api_response({"valid": True, "sectionId": payload.section_id, "data": cleaned})
