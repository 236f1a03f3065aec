"""Appointment status state machine with actor-aware guards."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from carebook.core.exceptions import ErrorKind, InvalidStatusValueException
from carebook.schemas.actors import Actor, Role
from carebook.schemas.appointments import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    ClinicalFields,
)

logger = structlog.get_logger(__name__)

Guard = Callable[[Actor, Appointment], bool]


def owning_patient(actor: Actor, appointment: Appointment) -> bool:
    """Patient the appointment belongs to."""
    return actor.role == Role.PATIENT and actor.patient_id == appointment.patient_id


def owning_doctor(actor: Actor, appointment: Appointment) -> bool:
    """Doctor the appointment is booked with."""
    return actor.role == Role.DOCTOR and actor.doctor_id == appointment.doctor_id


def admin(actor: Actor, appointment: Appointment) -> bool:
    """Any admin."""
    return actor.role == Role.ADMIN


def is_party(actor: Actor, appointment: Appointment) -> bool:
    """Whether the actor is the owning patient, the owning doctor, or an admin."""
    return any(guard(actor, appointment) for guard in (owning_patient, owning_doctor, admin))


@dataclass(frozen=True)
class Transition:
    """One edge of the status graph and the actors allowed to take it."""

    source: AppointmentStatus
    target: AppointmentStatus
    guards: tuple[Guard, ...]

    def allows(self, actor: Actor, appointment: Appointment) -> bool:
        """Whether any guard on this edge admits the actor."""
        return any(guard(actor, appointment) for guard in self.guards)


_S = AppointmentStatus

TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], Transition] = {
    (t.source, t.target): t
    for t in (
        Transition(_S.PENDING, _S.CONFIRMED, (owning_doctor, admin)),
        Transition(_S.PENDING, _S.CANCELLED, (owning_patient, owning_doctor, admin)),
        Transition(_S.CONFIRMED, _S.CANCELLED, (owning_patient, owning_doctor, admin)),
        Transition(_S.CONFIRMED, _S.COMPLETED, (owning_doctor, admin)),
        Transition(_S.CONFIRMED, _S.NO_SHOW, (owning_doctor, admin)),
    )
}

# Only these statuses may have their date moved
RESCHEDULABLE_STATUSES = ACTIVE_STATUSES

# Fields a patient may write; anything else in a patient request is dropped
PATIENT_WRITABLE_FIELDS = frozenset({"reason", "symptoms", "notes", "cancel_reason"})


@dataclass(frozen=True)
class ApprovedChange:
    """Validated change, carrying the sanitized fields to persist."""

    status: AppointmentStatus
    status_changed: bool
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.status_changed and not self.fields

    def values(self) -> dict[str, Any]:
        """Column values to write."""
        values = dict(self.fields)
        if self.status_changed:
            values["status"] = self.status
        return values


@dataclass(frozen=True)
class Rejection:
    """Refused change."""

    kind: ErrorKind
    message: str


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    """
    Parse an untrusted status value.

    Args:
        value: Status name, case-insensitive

    Returns:
        Parsed status

    Raises:
        InvalidStatusValueException: If the value is not a known status
    """
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidStatusValueException(f"Invalid appointment status: {value!r}") from None


class TransitionValidator:
    """Approves or rejects status changes and reschedules."""

    def __init__(
        self,
        transitions: dict[tuple[AppointmentStatus, AppointmentStatus], Transition] | None = None,
    ):
        self.transitions = TRANSITIONS if transitions is None else transitions

    def allowed_targets(self, actor: Actor, appointment: Appointment) -> set[AppointmentStatus]:
        """Statuses the actor could move the appointment to right now."""
        if not is_party(actor, appointment):
            return set()
        return {
            target
            for (source, target), transition in self.transitions.items()
            if source == appointment.status and transition.allows(actor, appointment)
        }

    def sanitize_fields(
        self,
        actor: Actor,
        fields: ClinicalFields | dict[str, Any] | None,
        target: AppointmentStatus,
    ) -> dict[str, Any]:
        """
        Drop fields the actor may not write.

        Patients silently lose everything outside ``PATIENT_WRITABLE_FIELDS``
        (diagnosis and prescription in particular). A cancellation reason is
        only kept when the appointment ends up cancelled.
        """
        if fields is None:
            return {}
        values = fields.provided() if isinstance(fields, ClinicalFields) else dict(fields)
        values = {key: value for key, value in values.items() if value is not None}

        if actor.role == Role.PATIENT:
            stripped = sorted(set(values) - PATIENT_WRITABLE_FIELDS)
            if stripped:
                logger.info(
                    "patient_fields_stripped",
                    user_id=str(actor.user_id),
                    fields=stripped,
                )
            values = {key: value for key, value in values.items() if key in PATIENT_WRITABLE_FIELDS}

        if target != AppointmentStatus.CANCELLED:
            values.pop("cancel_reason", None)

        return values

    def validate(
        self,
        actor: Actor,
        appointment: Appointment,
        target: AppointmentStatus,
        fields: ClinicalFields | dict[str, Any] | None = None,
    ) -> ApprovedChange | Rejection:
        """
        Validate a status change requested by an actor.

        Args:
            actor: Requesting party
            appointment: Current appointment state
            target: Requested status
            fields: Clinical fields sent with the request

        Returns:
            ``ApprovedChange`` with the sanitized fields, or a ``Rejection``
        """
        if not is_party(actor, appointment):
            return Rejection(ErrorKind.UNAUTHORIZED, "Permission denied")

        if target == appointment.status:
            return ApprovedChange(
                status=target,
                status_changed=False,
                fields=self.sanitize_fields(actor, fields, target),
            )

        transition = self.transitions.get((appointment.status, target))
        if transition is None:
            return Rejection(
                ErrorKind.INVALID_TRANSITION,
                f"Cannot change appointment from {appointment.status.value} to {target.value}",
            )

        if not transition.allows(actor, appointment):
            return Rejection(
                ErrorKind.UNAUTHORIZED,
                f"{actor.role.value.lower()} may not mark this appointment {target.value}",
            )

        return ApprovedChange(
            status=target,
            status_changed=True,
            fields=self.sanitize_fields(actor, fields, target),
        )

    def validate_reschedule(
        self,
        actor: Actor,
        appointment: Appointment,
        status: AppointmentStatus | None = None,
    ) -> Rejection | None:
        """
        Validate a date change.

        Args:
            actor: Requesting party
            appointment: Current appointment state
            status: Status the appointment will have, defaults to its current one

        Returns:
            ``None`` when allowed, otherwise a ``Rejection``
        """
        if not is_party(actor, appointment):
            return Rejection(ErrorKind.UNAUTHORIZED, "Permission denied")

        status = status or appointment.status
        if status not in RESCHEDULABLE_STATUSES:
            return Rejection(
                ErrorKind.NOT_RESCHEDULABLE,
                f"A {status.value} appointment can no longer be rescheduled",
            )
        return None
