"""
Teacher API endpoints. All endpoints require a teacher.
"""
from fastapi import APIRouter

from app.api.v1.endpoints.teacher import dynamic_profile

teacher_router = APIRouter(prefix="/teacher", tags=["Teacher"])

teacher_router.include_router(dynamic_profile.router, prefix="/dynamic-profile", tags=["Teacher Dynamic Profile"])
