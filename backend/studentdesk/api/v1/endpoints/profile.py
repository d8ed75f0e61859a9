"""
Student Profile API

Student routes:
- POST /profile            create own profile (once)
- GET  /profile/me         own profile, requires a completed profile

Admin routes:
- GET    /profile/all                list with search, filters and pagination
- GET    /profile/stats/dashboard    totals, fee sums, counts by course and year
- GET    /profile/{id}               any profile
- PUT    /profile/{id}               partial update
- DELETE /profile/{id}               delete (the user account is kept)
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from studentdesk.core.config import settings
from studentdesk.core.database import get_db
from studentdesk.models.user import User
from studentdesk.modules.auth.dependencies import (
    admin_only,
    get_current_user,
    require_completed_profile,
    student_only,
)
from studentdesk.schemas.common import ApiResponse, Pagination
from studentdesk.schemas.profile import DashboardStats, ProfileCreate, ProfileResponse, ProfileUpdate
from studentdesk.services.profile_service import ProfileService
from studentdesk.services.stats_service import ProfileQueryService, total_pages

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[ProfileResponse],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_profile(
    payload: ProfileCreate,
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """Create the current student's profile"""
    profile = await ProfileService(db).create(current_user, payload)
    return ApiResponse(
        message="Profile created successfully",
        data=ProfileResponse.from_model(profile),
    )


@router.get(
    "/me",
    response_model=ApiResponse[ProfileResponse],
    response_model_exclude_none=True,
    dependencies=[Depends(student_only), Depends(require_completed_profile)],
)
async def get_my_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current student's profile"""
    profile = await ProfileService(db).get_own(current_user.id)
    return ApiResponse(data=ProfileResponse.from_model(profile))


@router.get(
    "/all",
    response_model=ApiResponse[List[ProfileResponse]],
    response_model_exclude_none=True,
    dependencies=[Depends(admin_only)],
)
async def list_profiles(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by first name, last name or student ID"),
    course: Optional[str] = Query(None, description="Exact course"),
    department: Optional[str] = Query(None, description="Exact department"),
    year: Optional[int] = Query(None, ge=1, le=4, description="Exact year"),
    db: AsyncSession = Depends(get_db)
):
    """List all student profiles, newest first"""
    limit = min(limit, settings.MAX_PAGE_SIZE)

    profiles, total = await ProfileQueryService(db).list_filtered(
        search=search.strip() if search else None,
        course=course or None,
        department=department or None,
        year=year,
        page=page,
        limit=limit,
    )

    return ApiResponse(
        data=[ProfileResponse.from_model(profile) for profile in profiles],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=total_pages(total, limit),
        ),
    )


@router.get(
    "/stats/dashboard",
    response_model=ApiResponse[DashboardStats],
    response_model_exclude_none=True,
    dependencies=[Depends(admin_only)],
)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Get dashboard statistics"""
    stats = await ProfileQueryService(db).dashboard_stats()
    return ApiResponse(data=stats)


@router.get(
    "/{profile_id}",
    response_model=ApiResponse[ProfileResponse],
    response_model_exclude_none=True,
    dependencies=[Depends(admin_only)],
)
async def get_profile(profile_id: str, db: AsyncSession = Depends(get_db)):
    """Get a single student profile"""
    profile = await ProfileService(db).get_by_id(profile_id)
    return ApiResponse(data=ProfileResponse.from_model(profile))


@router.put(
    "/{profile_id}",
    response_model=ApiResponse[ProfileResponse],
    response_model_exclude_none=True,
    dependencies=[Depends(admin_only)],
)
async def update_profile(
    profile_id: str,
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Update a student profile (partial)"""
    profile = await ProfileService(db).update(profile_id, payload)
    return ApiResponse(
        message="Profile updated successfully",
        data=ProfileResponse.from_model(profile),
    )


@router.delete(
    "/{profile_id}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
    dependencies=[Depends(admin_only)],
)
async def delete_profile(profile_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a student profile"""
    await ProfileService(db).delete(profile_id)
    return ApiResponse(message="Profile deleted successfully")
