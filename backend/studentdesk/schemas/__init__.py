from studentdesk.schemas.common import ApiResponse, CamelModel, FieldError, Pagination
from studentdesk.schemas.auth import UserRegister, UserLogin, UserResponse, UserSummary, AuthPayload
from studentdesk.schemas.profile import (
    ProfileCreate,
    ProfileUpdate,
    ProfileResponse,
    DashboardStats,
    PROFILE_FIELD_MESSAGES,
)

__all__ = [
    "ApiResponse",
    "CamelModel",
    "FieldError",
    "Pagination",
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "UserSummary",
    "AuthPayload",
    "ProfileCreate",
    "ProfileUpdate",
    "ProfileResponse",
    "DashboardStats",
    "PROFILE_FIELD_MESSAGES",
]
