"""Appointment scheduling and lifecycle engine."""

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from carebook.core.exceptions import (
    AppointmentNotFoundException,
    PermissionDeniedException,
    exception_for,
)
from carebook.core.timeutils import as_utc, utcnow
from carebook.scheduling.conflicts import AvailabilityResult, ConflictChecker
from carebook.scheduling.notifications import (
    AppointmentEvent,
    EventKind,
    NotificationDispatcher,
)
from carebook.scheduling.policy import SchedulingPolicy
from carebook.scheduling.transitions import (
    Rejection,
    TransitionValidator,
    is_party,
    parse_status,
)
from carebook.schemas.actors import Actor, Role
from carebook.schemas.appointments import (
    Appointment,
    AppointmentFilters,
    AppointmentStatus,
    ClinicalFields,
)
from carebook.stores.base import AppointmentStore, AvailabilityStore, NotificationStore

logger = structlog.get_logger(__name__)

# Fields a booking request may carry
INTAKE_FIELDS = frozenset({"type", "reason", "symptoms", "notes"})


def _raise_if_rejected(outcome: AvailabilityResult | Rejection | None) -> None:
    if outcome is None:
        return
    if isinstance(outcome, Rejection):
        raise exception_for(outcome.kind, outcome.message)
    if not outcome.ok:
        raise exception_for(outcome.reason, outcome.message)  # type: ignore[arg-type]


class SchedulingEngine:
    """
    Books, reschedules and moves appointments through their lifecycle.

    Every mutation runs inside the appointment store's per-doctor
    transaction, so the availability check and the write that depends on
    it cannot interleave with another booking for the same doctor.
    Notifications go out after the mutation is committed.
    """

    def __init__(
        self,
        appointments: AppointmentStore,
        availability: AvailabilityStore,
        notifications: NotificationStore,
        policy: SchedulingPolicy | None = None,
        validator: TransitionValidator | None = None,
    ):
        """Initialize engine with its stores and the clinic policy."""
        self.appointments = appointments
        self.availability = availability
        self.policy = policy or SchedulingPolicy()
        self.checker = ConflictChecker(availability, appointments, self.policy)
        self.validator = validator or TransitionValidator()
        self.dispatcher = NotificationDispatcher(notifications, self.policy)

    async def _load(self, appointment_id: UUID) -> Appointment:
        appointment = await self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundException()
        return appointment

    async def book(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        proposed_start: datetime,
        fields: ClinicalFields | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        """
        Book a new appointment in PENDING.

        Args:
            patient_id: Patient the appointment is for
            doctor_id: Doctor being booked
            proposed_start: Requested start time
            fields: Intake fields (type, reason, symptoms, notes)
            now: Reference time for the past-date check

        Returns:
            Created appointment

        Raises:
            PastDateException: If the start is not in the future
            NoAvailabilityWindowException: If the doctor does not work then
            DoubleBookedException: If the slot is already taken
        """
        start = as_utc(proposed_start)
        intake = {
            key: value
            for key, value in (fields.provided() if fields else {}).items()
            if key in INTAKE_FIELDS
        }

        async with self.appointments.doctor_transaction(doctor_id):
            result = await self.checker.check_availability(doctor_id, start, now=now)
            if not result.ok:
                logger.info(
                    "booking_rejected",
                    doctor_id=str(doctor_id),
                    patient_id=str(patient_id),
                    reason=result.reason.value if result.reason else None,
                )
            _raise_if_rejected(result)

            timestamp = utcnow()
            created = await self.appointments.create(
                Appointment(
                    id=uuid4(),
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    date=start,
                    status=AppointmentStatus.PENDING,
                    created_at=timestamp,
                    updated_at=timestamp,
                    **intake,
                )
            )

        logger.info(
            "appointment_booked",
            appointment_id=str(created.id),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            date=created.date.isoformat(),
        )
        await self.dispatcher.dispatch(AppointmentEvent(kind=EventKind.BOOKED, appointment=created))
        return created

    async def reschedule(
        self,
        actor: Actor,
        appointment_id: UUID,
        new_start: datetime,
        now: datetime | None = None,
    ) -> Appointment:
        """
        Move an appointment to a new start time with the same doctor.

        Raises:
            AppointmentNotFoundException: If the appointment does not exist
            PermissionDeniedException: If the actor is not a party to it
            NotReschedulableException: If it is completed, cancelled or missed
            PastDateException, NoAvailabilityWindowException, DoubleBookedException:
                If the new slot cannot be taken
        """
        return await self.update(actor, appointment_id, new_start=new_start, now=now)

    async def change_status(
        self,
        actor: Actor,
        appointment_id: UUID,
        requested_status: AppointmentStatus | str,
        fields: ClinicalFields | dict[str, Any] | None = None,
    ) -> Appointment:
        """
        Move an appointment to another status.

        Re-submitting the current status succeeds without a status write.

        Raises:
            InvalidStatusValueException: If the status is not recognized
            AppointmentNotFoundException: If the appointment does not exist
            PermissionDeniedException: If the actor may not take this transition
            InvalidTransitionException: If the transition is not in the table
        """
        return await self.update(actor, appointment_id, status=requested_status, fields=fields)

    async def update(
        self,
        actor: Actor,
        appointment_id: UUID,
        status: AppointmentStatus | str | None = None,
        new_start: datetime | None = None,
        fields: ClinicalFields | dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        """
        Apply a status change and/or a date change in one write.

        The status is validated first, then the date against the status the
        appointment will end up in. Nothing is written unless both pass.

        Args:
            actor: Requesting party
            appointment_id: Appointment to change
            status: Requested status, ``None`` to keep the current one
            new_start: Requested start time, ``None`` to keep the current one
            fields: Clinical fields to write
            now: Reference time for the past-date check

        Returns:
            Appointment after the change
        """
        target = parse_status(status) if status is not None else None
        current = await self._load(appointment_id)

        async with self.appointments.doctor_transaction(current.doctor_id):
            # Re-read under the lock
            current = await self._load(appointment_id)

            approved = self.validator.validate(actor, current, target or current.status, fields)
            if isinstance(approved, Rejection):
                logger.info(
                    "status_change_rejected",
                    appointment_id=str(appointment_id),
                    user_id=str(actor.user_id),
                    kind=approved.kind.value,
                )
            _raise_if_rejected(approved)
            values = approved.values()

            previous_date = None
            if new_start is not None and as_utc(new_start) != current.date:
                start = as_utc(new_start)
                _raise_if_rejected(
                    self.validator.validate_reschedule(actor, current, approved.status)
                )
                _raise_if_rejected(
                    await self.checker.check_availability(
                        current.doctor_id,
                        start,
                        exclude_appointment_id=current.id,
                        now=now,
                    )
                )
                values["date"] = start
                previous_date = current.date

            if not values:
                return current

            values["updated_at"] = utcnow()
            updated = await self.appointments.update(current.id, values)

        if approved.status_changed:
            logger.info(
                "appointment_status_changed",
                appointment_id=str(updated.id),
                user_id=str(actor.user_id),
                old_status=current.status.value,
                new_status=updated.status.value,
            )
            event = AppointmentEvent.for_status(updated.status, updated, actor)
            if event is not None:
                await self.dispatcher.dispatch(event)

        if previous_date is not None:
            logger.info(
                "appointment_rescheduled",
                appointment_id=str(updated.id),
                user_id=str(actor.user_id),
                old_date=previous_date.isoformat(),
                new_date=updated.date.isoformat(),
            )
            await self.dispatcher.dispatch(
                AppointmentEvent(
                    kind=EventKind.RESCHEDULED,
                    appointment=updated,
                    initiator=actor,
                    previous_date=previous_date,
                )
            )

        return updated

    async def delete(self, actor: Actor, appointment_id: UUID) -> None:
        """
        Hard delete an appointment. Administrative only; no lifecycle rules apply.

        Raises:
            AppointmentNotFoundException: If the appointment does not exist
            PermissionDeniedException: If the actor is not an administrator
        """
        current = await self._load(appointment_id)
        if not actor.is_admin:
            raise PermissionDeniedException("Only administrators can delete appointments")

        async with self.appointments.doctor_transaction(current.doctor_id):
            await self.appointments.delete(appointment_id)

        logger.info(
            "appointment_deleted",
            appointment_id=str(appointment_id),
            user_id=str(actor.user_id),
        )

    async def get(self, actor: Actor, appointment_id: UUID) -> Appointment:
        """Load an appointment the actor is a party to."""
        appointment = await self._load(appointment_id)
        if not is_party(actor, appointment):
            raise PermissionDeniedException("Access denied to this appointment")
        return appointment

    async def list_for_actor(
        self,
        actor: Actor,
        filters: AppointmentFilters,
    ) -> tuple[list[Appointment], int]:
        """
        List appointments visible to an actor.

        Patients and doctors only ever see their own appointments; any
        patient/doctor filter they send is overridden. Admins filter freely.
        """
        if actor.role == Role.PATIENT:
            filters = filters.model_copy(update={"patient_id": actor.patient_id})
        elif actor.role == Role.DOCTOR:
            filters = filters.model_copy(update={"doctor_id": actor.doctor_id})
        return await self.appointments.search(filters)

    async def available_slots(
        self,
        doctor_id: UUID,
        day: date,
        now: datetime | None = None,
    ) -> list[datetime]:
        """Free start times for a doctor on a clinic-local day."""
        return await self.checker.available_slots(doctor_id, day, now=now)
