"""Health check endpoints."""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    version: str
    environment: str


class ReadinessResponse(HealthResponse):
    """Readiness response with the state of each backing service."""

    session_store: str
    change_feed: str


def _component_state(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up. Touches no backing service."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
    summary="Readiness check",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """
    Check the database (sessions, users, bookmarks) and Redis (change feed).

    Answers 503 while the database is down, since no request can be
    authenticated without it. A Redis outage only degrades realtime updates.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        overall = "unhealthy"
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return ReadinessResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        session_store=_component_state(db_healthy),
        change_feed=_component_state(redis_healthy),
    )


@router.get("/ping", status_code=status.HTTP_200_OK, summary="Simple ping")
async def ping() -> dict[str, str]:
    """Pong."""
    return {"message": "pong"}
