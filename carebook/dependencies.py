"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import settings
from carebook.core.redis_client import RateLimiter, get_redis_client
from carebook.core.security import actor_from_claims, decode_access_token
from carebook.database import get_db
from carebook.scheduling.engine import SchedulingEngine
from carebook.scheduling.policy import SchedulingPolicy
from carebook.schemas.actors import Actor
from carebook.stores.base import AppointmentStore, AvailabilityStore, NotificationStore
from carebook.stores.sql import SqlAppointmentStore, SqlAvailabilityStore, SqlNotificationStore

# Security
security = HTTPBearer()


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """
    Resolve the acting party from the bearer token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Actor carrying user id and role

    Raises:
        HTTPException: If token is invalid, expired or lacks a role
    """
    payload = decode_access_token(credentials.credentials)
    actor = actor_from_claims(payload) if payload is not None else None

    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
RedisClient = Annotated[redis.Redis, Depends(get_redis_client)]


@lru_cache
def get_policy() -> SchedulingPolicy:
    """Get cached scheduling policy built from settings."""
    return SchedulingPolicy.from_settings(settings)


def get_appointment_store(db: DatabaseSession) -> AppointmentStore:
    return SqlAppointmentStore(db)


def get_availability_store(db: DatabaseSession) -> AvailabilityStore:
    return SqlAvailabilityStore(db)


def get_notification_store(db: DatabaseSession) -> NotificationStore:
    return SqlNotificationStore(db)


def get_rate_limiter(redis_client: RedisClient) -> RateLimiter:
    return RateLimiter(redis_client)


AppointmentStoreDep = Annotated[AppointmentStore, Depends(get_appointment_store)]
AvailabilityStoreDep = Annotated[AvailabilityStore, Depends(get_availability_store)]
NotificationStoreDep = Annotated[NotificationStore, Depends(get_notification_store)]
PolicyDep = Annotated[SchedulingPolicy, Depends(get_policy)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]


def get_scheduling_engine(
    appointments: AppointmentStoreDep,
    availability: AvailabilityStoreDep,
    notifications: NotificationStoreDep,
    policy: PolicyDep,
) -> SchedulingEngine:
    """Build the scheduling engine over the request's stores."""
    return SchedulingEngine(appointments, availability, notifications, policy)


SchedulingEngineDep = Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
