"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

from asset_intake.config import settings
from asset_intake.database import engine
from asset_intake.utils.cache import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness only: no database or Redis round trip."""
    return {
        "status": "ok",
        "service": "asset-intake",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness: 200 only if the database and Redis both answer."""
    checks = {"service": "ok", "database": "unknown", "redis": "unknown"}
    healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        checks["database"] = f"error: {str(e)[:100]}"
        healthy = False

    try:
        client = await get_redis()
        await client.ping()
        checks["redis"] = "ok"
    except (RedisError, OSError) as e:
        checks["redis"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "asset-intake",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
