from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from studentdesk.core.database import get_db
from studentdesk.core.exceptions import DuplicateKeyError, InvalidCredentialsError
from studentdesk.core.logging_config import logger
from studentdesk.core.rate_limiter import auth_rate_limit
from studentdesk.core.security import create_identity_token
from studentdesk.models.user import User
from studentdesk.modules.auth.dependencies import get_current_user
from studentdesk.schemas.auth import AuthPayload, UserLogin, UserRegister, UserResponse
from studentdesk.schemas.common import ApiResponse
from studentdesk.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
@auth_rate_limit()
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user and log them in"""
    client_ip = request.client.host if request.client else "unknown"

    try:
        user = await AuthService(db).register(
            name=user_data.name,
            email=user_data.email,
            password=user_data.password,
            role=user_data.role,
        )
    except DuplicateKeyError:
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return ApiResponse(
        message="User registered successfully",
        data=AuthPayload(
            token=create_identity_token(user.id),
            user=UserResponse.model_validate(user),
        ),
    )


@router.post("/login", response_model=ApiResponse[AuthPayload], response_model_exclude_none=True)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Exchange email and password for a session token"""
    client_ip = request.client.host if request.client else "unknown"

    try:
        token, user = await AuthService(db).authenticate(credentials.email, credentials.password)
    except InvalidCredentialsError:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise

    logger.log_auth_event(event="login", success=True, user_email=user.email, client_ip=client_ip)

    return ApiResponse(
        message="Login successful",
        data=AuthPayload(token=token, user=UserResponse.model_validate(user)),
    )


@router.get("/me", response_model=ApiResponse[UserResponse], response_model_exclude_none=True)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info"""
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.put("/profile-completed", response_model=ApiResponse[UserResponse], response_model_exclude_none=True)
async def mark_profile_completed(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark the current user's profile as completed (idempotent)"""
    await AuthService(db).mark_profile_completed(current_user.id)
    await db.refresh(current_user)

    return ApiResponse(
        message="Profile marked as completed",
        data=UserResponse.model_validate(current_user),
    )
