"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from carebook.core.exceptions import BadRequestException, PermissionDeniedException
from carebook.dependencies import CurrentActor, SchedulingEngineDep
from carebook.schemas.actors import Role
from carebook.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)

router = APIRouter()


@router.post(
    "/",
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> Appointment:
    """
    Book an appointment with a doctor.

    Patients book for themselves. Administrators book on behalf of a
    patient and must name one. Doctors cannot book.

    Args:
        data: Booking request
        actor: Authenticated actor
        engine: Scheduling engine

    Returns:
        Created appointment in PENDING
    """
    if actor.role == Role.DOCTOR:
        raise PermissionDeniedException("Doctors cannot book appointments")

    if actor.role == Role.PATIENT:
        patient_id = actor.patient_id
    else:
        if data.patient_id is None:
            raise BadRequestException("patient_id is required when booking as an administrator")
        patient_id = data.patient_id

    return await engine.book(
        patient_id=patient_id,  # type: ignore[arg-type]
        doctor_id=data.doctor_id,
        proposed_start=data.date,
        fields=data.clinical_fields(),
    )


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    engine: SchedulingEngineDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments visible to the authenticated actor.

    Patients see their own appointments and doctors see theirs; the
    ``patient_id``/``doctor_id`` filters only narrow an administrator's view.
    """
    filters = AppointmentFilters(
        status=status_filter,
        doctor_id=doctor_id,
        patient_id=patient_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    items, total = await engine.list_for_actor(actor, filters)
    return AppointmentListResponse(total=total, page=page, page_size=page_size, items=items)


@router.get(
    "/{appointment_id}",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> Appointment:
    """
    Get a specific appointment by ID.

    Raises:
        AppointmentNotFoundException: If the appointment does not exist
        PermissionDeniedException: If the actor is not a party to it
    """
    return await engine.get(actor, appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> Appointment:
    """
    Update status, date and clinical fields of an appointment in one request.

    The status change is validated first and the date change against the
    resulting status; nothing is stored unless both are accepted.

    Args:
        appointment_id: Appointment ID
        data: Update data
        actor: Authenticated actor
        engine: Scheduling engine

    Returns:
        Updated appointment
    """
    return await engine.update(
        actor,
        appointment_id,
        status=data.status,
        new_start=data.date,
        fields=data.clinical_fields(),
    )


@router.patch(
    "/{appointment_id}/status",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> Appointment:
    """
    Update appointment status (e.g., confirm, cancel, complete).

    Args:
        appointment_id: Appointment ID
        data: Target status and clinical fields
        actor: Authenticated actor
        engine: Scheduling engine

    Returns:
        Updated appointment
    """
    return await engine.change_status(
        actor,
        appointment_id,
        data.status,
        fields=data.clinical_fields(),
    )


@router.post(
    "/{appointment_id}/reschedule",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> Appointment:
    """Move an appointment to a new start time with the same doctor."""
    return await engine.reschedule(actor, appointment_id, data.date)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    engine: SchedulingEngineDep,
) -> None:
    """
    Permanently delete an appointment. Administrators only.

    Args:
        appointment_id: Appointment ID
        actor: Authenticated actor
        engine: Scheduling engine
    """
    await engine.delete(actor, appointment_id)
