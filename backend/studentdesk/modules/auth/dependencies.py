"""
Access-control chain for protected routes.

Applied in this order, each step either passes or ends the request:

1. ``get_current_user``          bearer token -> identity (401 on failure)
2. ``require_roles(...)``        role allow-list (403)
3. ``require_completed_profile`` students must have a profile (403 with
                                 requiresProfileCompletion)

Usage:
    @router.get("/me", dependencies=[Depends(student_only), Depends(require_completed_profile)])
    async def get_my_profile(current_user: User = Depends(get_current_user)):
        ...
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Callable, Optional

from studentdesk.core.database import get_db
from studentdesk.core.exceptions import (
    ForbiddenError,
    InvalidTokenError,
    ProfileCompletionRequiredError,
    UnauthorizedError,
)
from studentdesk.core.logging_config import logger, set_user_id
from studentdesk.core.security import verify_token
from studentdesk.models.user import User, UserRole
from studentdesk.services.auth_service import AuthService

# auto_error=False: a missing header is reported as our own 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user and attach it to the request"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("no token")

    try:
        user_id = verify_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.log_auth_event(event="verify", success=False, reason=e.message)
        raise UnauthorizedError("token failed")

    user = await AuthService(db).get_user(user_id)
    if not user:
        # Account removed after the token was issued
        raise UnauthorizedError("user not found")

    request.state.user = user
    request.state.user_id = str(user.id)
    set_user_id(str(user.id))
    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that only lets the given roles through.

    Usage:
        @router.get("/all", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = frozenset(roles)

    async def check_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.log_auth_event(
                event="authorize",
                success=False,
                user_email=current_user.email,
                reason=f"role {current_user.role.value} not in {sorted(r.value for r in allowed)}"
            )
            raise ForbiddenError.for_role(current_user.role.value)
        return current_user

    return check_role


student_only = require_roles(UserRole.STUDENT)
admin_only = require_roles(UserRole.ADMIN)


async def require_completed_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Block students whose profile is not completed yet.

    The flag is read fresh from the store, not from the identity loaded at
    the start of the request.
    """
    result = await db.execute(
        select(User.profile_completed).where(User.id == current_user.id)
    )
    profile_completed = bool(result.scalar_one_or_none())

    if current_user.is_student:
        if not profile_completed:
            raise ProfileCompletionRequiredError()
    elif current_user.is_admin:
        pass
    else:
        raise ForbiddenError.for_role(str(current_user.role))

    return current_user
