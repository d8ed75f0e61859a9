"""
StudentDesk - HTTP Middleware

- RequestLoggingMiddleware: request id correlation, timing, one log line per request
- SecurityHeadersMiddleware: fixed set of response hardening headers
"""

import time
from typing import Callable, Dict, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from studentdesk.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# Probes and docs are not worth a log line each
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/health",
    "/api/health",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
})

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
}


def is_quiet_path(path: str) -> bool:
    return path in QUIET_PATHS or path.startswith("/docs/")


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Reuses the caller's X-Request-ID (or mints one), exposes it to every log
    record of the request through the logging context, and reports status
    and duration once the response is ready.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"{request.method} {request.url.path} raised {type(exc).__name__}",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "duration_ms": self._elapsed_ms(started),
                },
            )
            raise
        else:
            duration_ms = self._elapsed_ms(started)
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms:.2f}ms"
            self._report(request, response.status_code, duration_ms)
            return response
        finally:
            set_request_id("")
            set_user_id("")

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000

    @staticmethod
    def _report(request: Request, status_code: int, duration_ms: float) -> None:
        path = request.url.path
        if is_quiet_path(path):
            return

        logger.log_request(request.method, path, status_code, duration_ms, client_ip=client_ip(request))
        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"Slow request: {request.method} {path} took {duration_ms:.0f}ms",
                extra={"event_type": "slow_request", "duration_ms": duration_ms},
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add SECURITY_HEADERS to every response that does not set them itself"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "is_quiet_path",
    "QUIET_PATHS",
]
