"""Doctor schedule and free slot endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from carebook.config import settings
from carebook.core.exceptions import PermissionDeniedException, RateLimitException
from carebook.dependencies import (
    AvailabilityStoreDep,
    CurrentActor,
    RateLimiterDep,
    SchedulingEngineDep,
)
from carebook.schemas.actors import Role
from carebook.schemas.availability import (
    AvailabilityWindow,
    AvailableSlotsResponse,
    ScheduleResponse,
    ScheduleUpdate,
)

router = APIRouter()


# ============================================================================
# Weekly Schedule
# ============================================================================


@router.get("/{doctor_id}/schedule", response_model=ScheduleResponse)
async def get_schedule(
    doctor_id: UUID,
    actor: CurrentActor,
    availability: AvailabilityStoreDep,
) -> ScheduleResponse:
    """
    Get a doctor's weekly availability windows.

    Windows are in clinic local time; weekday 0 is Sunday.
    """
    windows = await availability.list_windows(doctor_id)
    return ScheduleResponse(doctor_id=doctor_id, windows=windows)


@router.put("/{doctor_id}/schedule", response_model=ScheduleResponse)
async def replace_schedule(
    doctor_id: UUID,
    data: ScheduleUpdate,
    actor: CurrentActor,
    availability: AvailabilityStoreDep,
) -> ScheduleResponse:
    """
    Replace a doctor's weekly availability windows.

    - **windows**: Complete new schedule; windows not listed are removed
    - **weekday**: 0 (Sunday) to 6 (Saturday)
    - **start_time** / **end_time**: Local clinic time, end after start
    - **is_available**: Disabled windows are kept but never bookable

    Only the doctor themselves or an administrator may change a schedule.
    Existing appointments are not touched.
    """
    if not (actor.is_admin or (actor.role == Role.DOCTOR and actor.doctor_id == doctor_id)):
        raise PermissionDeniedException("Only the doctor or an administrator can change this schedule")

    windows = await availability.replace_windows(
        doctor_id,
        [AvailabilityWindow(doctor_id=doctor_id, **w.model_dump()) for w in data.windows],
    )
    return ScheduleResponse(doctor_id=doctor_id, windows=windows)


# ============================================================================
# Free Slots
# ============================================================================


@router.get("/{doctor_id}/slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    doctor_id: UUID,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
    rate_limiter: RateLimiterDep,
    day: date = Query(..., alias="date", description="Clinic-local calendar day"),
) -> AvailableSlotsResponse:
    """
    List free appointment start times for a doctor on a day.

    - **date**: Calendar day in clinic local time (YYYY-MM-DD)

    Starts are offered every slot interval inside the doctor's enabled
    windows, skipping past times and times that would overlap an active
    appointment. Requests are rate limited per user.
    """
    if not rate_limiter.check_rate_limit(
        f"rate:slots:{actor.user_id}",
        settings.rate_limit_per_minute,
    ):
        raise RateLimitException("Too many slot lookups, try again in a minute")

    slots = await engine.available_slots(doctor_id, day)
    return AvailableSlotsResponse(doctor_id=doctor_id, date=day, available_slots=slots)
