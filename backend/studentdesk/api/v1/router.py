from fastapi import APIRouter
from studentdesk.api.v1.endpoints import auth, health, profile

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(profile.router, prefix="/profile", tags=["Student Profiles"])
