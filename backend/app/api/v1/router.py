from fastapi import APIRouter
from app.api.v1.endpoints import health
from app.api.v1.endpoints.admin import admin_router
from app.api.v1.endpoints.teacher import teacher_router

api_router = APIRouter()

# Include deep health check endpoints (use /health/ready for load balancers)
api_router.include_router(health.router)


# Simple health check endpoint (backward compatible)
@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "tutorhub-backend"}


# Admin console
api_router.include_router(admin_router)

# Teacher self-service
api_router.include_router(teacher_router)
