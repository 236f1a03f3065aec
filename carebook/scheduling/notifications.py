"""Fan-out of appointment events into in-app notifications."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog

from carebook.scheduling.policy import SchedulingPolicy
from carebook.schemas.actors import Actor, Role
from carebook.schemas.appointments import Appointment, AppointmentStatus
from carebook.schemas.notifications import Notification, NotificationType
from carebook.stores.base import NotificationStore

logger = structlog.get_logger(__name__)


class EventKind(str, Enum):
    """What happened to an appointment."""

    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"
    REMINDER = "reminder"


_STATUS_EVENTS = {
    AppointmentStatus.CONFIRMED: EventKind.CONFIRMED,
    AppointmentStatus.CANCELLED: EventKind.CANCELLED,
    AppointmentStatus.COMPLETED: EventKind.COMPLETED,
    AppointmentStatus.NO_SHOW: EventKind.NO_SHOW,
}


@dataclass(frozen=True)
class AppointmentEvent:
    """An accepted change to an appointment."""

    kind: EventKind
    appointment: Appointment
    initiator: Actor | None = None
    previous_date: datetime | None = None

    @classmethod
    def for_status(
        cls,
        status: AppointmentStatus,
        appointment: Appointment,
        initiator: Actor | None,
    ) -> "AppointmentEvent | None":
        """Event for an appointment entering ``status``, if that status has one."""
        kind = _STATUS_EVENTS.get(status)
        if kind is None:
            return None
        return cls(kind=kind, appointment=appointment, initiator=initiator)


class Audience(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


@dataclass(frozen=True)
class Template:
    type: NotificationType
    title: str
    message: str


TEMPLATES: dict[tuple[EventKind, Audience], Template] = {
    (EventKind.BOOKED, Audience.DOCTOR): Template(
        NotificationType.NEW_APPOINTMENT,
        "New Appointment Request",
        "You have a new appointment request on {when}.",
    ),
    (EventKind.CONFIRMED, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_CONFIRMATION,
        "Appointment Confirmed",
        "Your appointment on {when} has been confirmed.",
    ),
    (EventKind.CANCELLED, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_CANCELLATION,
        "Appointment Cancelled",
        "Your appointment on {when} has been cancelled{reason}.",
    ),
    (EventKind.CANCELLED, Audience.DOCTOR): Template(
        NotificationType.APPOINTMENT_CANCELLATION,
        "Appointment Cancelled",
        "The appointment on {when} has been cancelled{reason}.",
    ),
    (EventKind.COMPLETED, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_COMPLETION,
        "Appointment Completed",
        "Your appointment on {when} is completed. Thank you for your visit.",
    ),
    (EventKind.RESCHEDULED, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_RESCHEDULED,
        "Appointment Rescheduled",
        "Your appointment has been moved from {previous} to {when}.",
    ),
    (EventKind.RESCHEDULED, Audience.DOCTOR): Template(
        NotificationType.APPOINTMENT_RESCHEDULED,
        "Appointment Rescheduled",
        "An appointment has been moved from {previous} to {when}.",
    ),
    (EventKind.NO_SHOW, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_NO_SHOW,
        "Missed Appointment",
        "You missed your appointment on {when}. Please book a new time if you still need care.",
    ),
    (EventKind.REMINDER, Audience.PATIENT): Template(
        NotificationType.APPOINTMENT_REMINDER,
        "Appointment Reminder",
        "You have an appointment on {when}. Please be on time.",
    ),
}

DATE_FORMAT = "%b %d, %Y at %I:%M %p"


class NotificationDispatcher:
    """Turns appointment events into notifications and stores them best-effort."""

    def __init__(self, store: NotificationStore, policy: SchedulingPolicy):
        self.store = store
        self.policy = policy

    def audiences(self, event: AppointmentEvent) -> list[Audience]:
        """Parties that hear about an event."""
        kind = event.kind
        if kind == EventKind.BOOKED:
            return [Audience.DOCTOR]
        if kind in (EventKind.CONFIRMED, EventKind.COMPLETED, EventKind.REMINDER):
            return [Audience.PATIENT]
        if kind == EventKind.RESCHEDULED:
            return [Audience.PATIENT, Audience.DOCTOR]
        if kind == EventKind.NO_SHOW:
            return [Audience.PATIENT] if self.policy.notify_on_no_show else []
        if kind == EventKind.CANCELLED:
            # The party who cancelled already knows
            return [
                audience
                for audience in (Audience.PATIENT, Audience.DOCTOR)
                if audience != _initiating_party(event)
            ]
        return []

    def format_when(self, value: datetime) -> str:
        """Render an instant in the clinic time zone."""
        return value.astimezone(self.policy.timezone).strftime(DATE_FORMAT)

    def build(self, event: AppointmentEvent) -> list[Notification]:
        """
        Build the notifications for an event without storing them.

        Args:
            event: Accepted appointment change

        Returns:
            Zero or more notifications, at most one per party
        """
        appointment = event.appointment
        reason = appointment.cancel_reason
        context = {
            "when": self.format_when(appointment.date),
            "previous": self.format_when(event.previous_date) if event.previous_date else "",
            "reason": f": {reason}" if reason else "",
        }

        built = []
        for audience in self.audiences(event):
            template = TEMPLATES.get((event.kind, audience))
            if template is None:
                continue
            recipient = (
                appointment.patient_id if audience == Audience.PATIENT else appointment.doctor_id
            )
            built.append(
                Notification(
                    recipient_user_id=recipient,
                    type=template.type,
                    title=template.title,
                    message=template.message.format(**context),
                    appointment_id=appointment.id,
                )
            )
        return built

    async def dispatch(self, event: AppointmentEvent) -> list[Notification]:
        """
        Build and store the notifications for an event.

        Storage failures are logged and swallowed; the appointment change
        that produced the event stays committed either way.

        Args:
            event: Accepted appointment change

        Returns:
            Notifications that were stored
        """
        try:
            pending = self.build(event)
        except Exception as e:
            logger.error(
                "notification_build_failed",
                event_kind=event.kind.value,
                appointment_id=str(event.appointment.id),
                error=str(e),
            )
            return []

        stored = []
        for notification in pending:
            try:
                stored.append(await self.store.create(notification))
            except Exception as e:
                logger.error(
                    "notification_dispatch_failed",
                    event_kind=event.kind.value,
                    appointment_id=str(event.appointment.id),
                    recipient=str(notification.recipient_user_id),
                    error=str(e),
                )

        if stored:
            logger.info(
                "notifications_dispatched",
                event_kind=event.kind.value,
                appointment_id=str(event.appointment.id),
                count=len(stored),
            )
        return stored


def _initiating_party(event: AppointmentEvent) -> Audience | None:
    actor = event.initiator
    if actor is None:
        return None
    if actor.role == Role.PATIENT and actor.patient_id == event.appointment.patient_id:
        return Audience.PATIENT
    if actor.role == Role.DOCTOR and actor.doctor_id == event.appointment.doctor_id:
        return Audience.DOCTOR
    return None
