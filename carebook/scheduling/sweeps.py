"""Periodic sweeps over upcoming and overdue appointments."""

from datetime import datetime, timedelta
from uuid import UUID

import structlog

from carebook.core.exceptions import AppException
from carebook.core.timeutils import as_utc, utcnow
from carebook.scheduling.engine import SchedulingEngine
from carebook.scheduling.notifications import AppointmentEvent, EventKind
from carebook.schemas.actors import Actor, Role
from carebook.schemas.appointments import AppointmentStatus
from carebook.schemas.notifications import NotificationType

logger = structlog.get_logger(__name__)

# Actor used for changes made by scheduled jobs
SYSTEM_ACTOR = Actor(user_id=UUID(int=0), role=Role.ADMIN)


class AppointmentSweeper:
    """Sends reminders for upcoming appointments and closes out missed ones."""

    def __init__(self, engine: SchedulingEngine, lookback: timedelta = timedelta(days=30)):
        self.engine = engine
        self.lookback = lookback

    async def send_reminders(self, now: datetime | None = None) -> int:
        """
        Remind patients of confirmed appointments starting within the reminder window.

        Appointments that already have a stored reminder are skipped, so the
        job can run more often than once per window.

        Args:
            now: Reference time, defaults to the current time

        Returns:
            Number of reminders sent
        """
        now = as_utc(now) if now else utcnow()
        upcoming = await self.engine.appointments.find_in_range(
            now,
            now + self.engine.policy.reminder_window,
            [AppointmentStatus.CONFIRMED],
        )

        sent = 0
        skipped = 0
        for appointment in upcoming:
            if await self.engine.dispatcher.store.exists_for_appointment(
                appointment.id, NotificationType.APPOINTMENT_REMINDER
            ):
                skipped += 1
                continue
            stored = await self.engine.dispatcher.dispatch(
                AppointmentEvent(kind=EventKind.REMINDER, appointment=appointment)
            )
            sent += len(stored)

        logger.info(
            "reminders_sent",
            candidates=len(upcoming),
            sent=sent,
            already_reminded=skipped,
        )
        return sent

    async def mark_missed(
        self,
        now: datetime | None = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> int:
        """
        Move confirmed appointments that have fully elapsed to NO_SHOW.

        Each appointment goes through the normal status change path, so a
        row changed concurrently (for instance completed by the doctor) is
        skipped rather than overwritten.

        Args:
            now: Reference time, defaults to the current time
            actor: Party recorded as making the change

        Returns:
            Number of appointments marked as missed
        """
        now = as_utc(now) if now else utcnow()
        overdue = await self.engine.appointments.find_in_range(
            now - self.lookback,
            now - self.engine.policy.duration,
            [AppointmentStatus.CONFIRMED],
        )

        marked = 0
        for appointment in overdue:
            try:
                await self.engine.change_status(actor, appointment.id, AppointmentStatus.NO_SHOW)
                marked += 1
            except AppException as e:
                logger.warning(
                    "mark_missed_skipped",
                    appointment_id=str(appointment.id),
                    kind=e.kind.value,
                    error=e.message,
                )

        logger.info("missed_appointments_marked", candidates=len(overdue), marked=marked)
        return marked
