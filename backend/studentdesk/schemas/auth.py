from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from studentdesk.models.user import UserRole
from studentdesk.schemas.common import CamelModel, NonBlankStr


class UserRegister(BaseModel):
    name: NonBlankStr
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.STUDENT


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: UserRole
    profile_completed: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class UserSummary(CamelModel):
    """Owner reference embedded in profile responses"""
    id: str
    name: str
    email: str
    role: UserRole


class AuthPayload(BaseModel):
    token: str
    user: UserResponse


# Client-facing message per failing field of the auth payloads
AUTH_FIELD_MESSAGES = {
    "name": "Name is required",
    "email": "Please provide a valid email",
    "password": "Password must be at least 6 characters",
    "role": "Invalid role",
}
