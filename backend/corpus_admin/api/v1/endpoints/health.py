"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable); 503 otherwise
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
import time

from sqlalchemy import text

from corpus_admin.core.config import settings
from corpus_admin.core.database import get_session_local
from corpus_admin.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1 as health"))

        latency = (time.time() - start) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(latency, 2),
            "connection": "ok",
        }
    except Exception as e:
        latency = (time.time() - start) * 1000
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round(latency, 2),
            "connection": "failed",
            "error": str(e),
        }


@router.get("/live")
async def liveness_check():
    """Liveness probe - the process is up"""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe - 200 only when the database answers"""
    db_check = await check_database()
    healthy = db_check["status"] == "healthy"

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "timestamp": datetime.utcnow().isoformat(),
            "checks": {"database": db_check},
        }
    )
