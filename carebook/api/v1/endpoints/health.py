"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from carebook.config import settings
from carebook.core.redis_client import check_redis_connection
from carebook.database import check_database_connection
from carebook.dependencies import PolicyDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class SchedulingInfo(BaseModel):
    """Active scheduling policy, as seen by this instance."""

    clinic_timezone: str
    appointment_duration_minutes: int
    slot_interval_minutes: int


class DetailedHealthResponse(HealthResponse):
    """Detailed health check response model."""

    database: str
    redis: str
    scheduling: SchedulingInfo


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the API process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(policy: PolicyDep) -> DetailedHealthResponse:
    """
    Detailed health check with database and Redis status.

    The API is "degraded" rather than down when Redis is unreachable;
    only slot lookups lose their rate limit.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    return DetailedHealthResponse(
        status="healthy" if db_healthy and redis_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        scheduling=SchedulingInfo(
            clinic_timezone=str(policy.timezone),
            appointment_duration_minutes=policy.duration_minutes,
            slot_interval_minutes=int(policy.slot_interval.total_seconds() // 60),
        ),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Liveness probe."""
    return {"message": "pong"}
