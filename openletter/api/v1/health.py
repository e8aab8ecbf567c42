"""Health check endpoints."""

import redis.asyncio as redis
from fastapi import APIRouter
from sqlalchemy import text

from openletter.core.config import settings
from openletter.core.deps import DBSession
from openletter.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DBSession) -> HealthResponse:
    """
    Health check endpoint.

    Checks the database and the Celery broker used for confirmation emails.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    try:
        client = redis.from_url(str(settings.redis_url))  # type: ignore[no-untyped-call]
        await client.ping()
        await client.aclose()
        checks["broker"] = "healthy"
    except Exception as e:
        checks["broker"] = f"unhealthy: {str(e)}"

    healthy = all(value == "healthy" for value in checks.values())
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.version,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness probe for container orchestration.

    Simple check that the service is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str]:
    """
    Readiness probe for container orchestration.

    Ready once the database answers.
    """
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}
