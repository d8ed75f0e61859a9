from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from typing import Any, Dict, List

from studentdesk.core.config import settings
from studentdesk.core.database import Database
from studentdesk.core.exceptions import StudentDeskError, ValidationFailedError, error_response
from studentdesk.core.logging_config import logger
from studentdesk.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from studentdesk.core.rate_limiter import limiter, rate_limit_exceeded_handler
from studentdesk.api.v1.endpoints import health
from studentdesk.api.v1.router import api_router
from studentdesk.schemas.auth import AUTH_FIELD_MESSAGES
from studentdesk.schemas.profile import PROFILE_FIELD_MESSAGES

FIELD_MESSAGES: Dict[str, str] = {**AUTH_FIELD_MESSAGES, **PROFILE_FIELD_MESSAGES}

# Request parts that are not part of the client-visible field path
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def validate_critical_config() -> None:
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    logger.info("[Startup] Critical configuration validated")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info(f"Starting {settings.APP_NAME} (environment: {settings.ENVIRONMENT})")

    validate_critical_config()

    database = Database()
    await database.connect()
    await database.create_all()
    app.state.database = database
    logger.info("[Startup] Database connected, tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await database.disconnect()


def field_path(loc: tuple) -> str:
    """Dotted camelCase path of a validation error location"""
    parts = list(loc)
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(part) for part in parts) or "body"


def field_message(path: str, error: Dict[str, Any]) -> str:
    if path in FIELD_MESSAGES:
        return FIELD_MESSAGES[path]
    ctx_error = (error.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    return error.get("msg", "Invalid value")


def validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """One {field, message} entry per failing field, first failure wins"""
    seen = set()
    result = []
    for error in errors:
        path = field_path(error.get("loc", ()))
        if path in seen:
            continue
        seen.add(path)
        result.append({"field": path, "message": field_message(path, error)})
    return result


async def studentdesk_error_handler(request: Request, exc: StudentDeskError):
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationFailedError(validation_errors(exc.errors()))
    logger.debug(f"Validation failed on {request.url.path}: {error.errors}")
    return JSONResponse(status_code=error.status_code, content=error_response(error))


async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    content = {"success": False, "message": "Server error"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Student records backend: accounts, profiles, fees and admin reporting",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        redirect_slashes=False
    )

    # Add rate limiter state and exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Exception handlers
    app.add_exception_handler(StudentDeskError, studentdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Add middleware (order matters - last added runs first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )

    app.include_router(health.router)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "studentdesk.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
