"""
Health check endpoint.

Reports whether the API process is up and whether the store answers a
trivial query. Always returns 200 so load balancers can read the body;
``database.status`` carries the verdict.
"""

from fastapi import APIRouter, Request
from datetime import datetime
from typing import Any, Dict
import time

from studentdesk.core.config import settings
from studentdesk.core.logging_config import logger

router = APIRouter(tags=["Health"])


async def check_database(request: Request) -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    database = getattr(request.app.state, "database", None)
    if database is None or not database.is_connected:
        return {"status": "unhealthy", "connection": "not_connected"}

    try:
        await database.ping()
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "connection": "failed",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }

    return {
        "status": "healthy",
        "connection": "ok",
        "latency_ms": round((time.time() - start) * 1000, 2),
    }


@router.get("/health")
async def health_check(request: Request):
    """Liveness plus a database ping"""
    database = await check_database(request)
    return {
        "success": True,
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "app_name": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.utcnow().isoformat(),
        "database": database,
    }
