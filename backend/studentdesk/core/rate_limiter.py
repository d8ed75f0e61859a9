"""
Rate Limiting for the StudentDesk API
=====================================
Implements rate limiting using slowapi.

Public auth endpoints (register, login) get their own tighter limit
(AUTH_RATE_LIMIT) as brute force protection. Storage defaults to the
in-process memory backend; point RATE_LIMIT_STORAGE_URI at Redis when
running several workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from studentdesk.core.config import settings
from studentdesk.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Priority:
    1. Authenticated user ID (set by the auth dependency)
    2. IP address (for anonymous users)
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


# Create limiter instance
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return the standard envelope with a Retry-After hint"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down.",
            "code": "RATE_LIMITED",
        },
        headers={"Retry-After": "60"}
    )


def auth_rate_limit():
    """Rate limit for public auth endpoints"""
    return limiter.limit(settings.AUTH_RATE_LIMIT, key_func=get_client_identifier)
