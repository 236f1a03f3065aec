"""Availability and double-booking checks."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from uuid import UUID

import structlog

from carebook.core.exceptions import ErrorKind
from carebook.core.timeutils import as_utc, js_weekday, local_parts, utcnow
from carebook.scheduling.policy import SchedulingPolicy
from carebook.stores.base import AppointmentStore, AvailabilityStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of an availability check."""

    reason: ErrorKind | None = None
    message: str = ""
    conflicting_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """Whether the proposed slot can be taken."""
        return self.reason is None


AVAILABLE = AvailabilityResult()


class ConflictChecker:
    """Decides whether a doctor can take an appointment at a proposed time."""

    def __init__(
        self,
        availability: AvailabilityStore,
        appointments: AppointmentStore,
        policy: SchedulingPolicy,
    ):
        """Initialize checker with its stores and the clinic policy."""
        self.availability = availability
        self.appointments = appointments
        self.policy = policy

    async def check_availability(
        self,
        doctor_id: UUID,
        proposed_start: datetime,
        duration: timedelta | None = None,
        exclude_appointment_id: UUID | None = None,
        now: datetime | None = None,
    ) -> AvailabilityResult:
        """
        Check a proposed appointment interval for a doctor.

        The checks run in a fixed order: the start must be in the future,
        it must fall inside an enabled weekly window, and the interval must
        not overlap an active appointment of the same doctor.

        Args:
            doctor_id: Doctor to check
            proposed_start: Proposed appointment start
            duration: Appointment length, defaults to the policy duration
            exclude_appointment_id: Appointment to ignore (the one being moved)
            now: Reference time, defaults to the current time

        Returns:
            ``AVAILABLE`` or a result carrying the reason the slot is refused
        """
        start = as_utc(proposed_start)
        duration = duration or self.policy.duration
        now = as_utc(now) if now else utcnow()

        if start <= now:
            return AvailabilityResult(
                reason=ErrorKind.PAST_DATE,
                message="Appointment time must be in the future",
            )

        if not await self.within_window(doctor_id, start):
            return AvailabilityResult(
                reason=ErrorKind.NO_AVAILABILITY_WINDOW,
                message="Doctor is not available at this time",
            )

        overlapping = await self.appointments.find_overlapping(
            doctor_id,
            start,
            start + duration,
            int(duration.total_seconds() // 60),
            exclude_id=exclude_appointment_id,
        )
        if overlapping:
            logger.info(
                "slot_conflict",
                doctor_id=str(doctor_id),
                start=start.isoformat(),
                conflicting=[str(appt.id) for appt in overlapping],
            )
            return AvailabilityResult(
                reason=ErrorKind.DOUBLE_BOOKED,
                message="Doctor already has an appointment at this time",
                conflicting_ids=tuple(appt.id for appt in overlapping),
            )

        return AVAILABLE

    async def within_window(self, doctor_id: UUID, start: datetime) -> bool:
        """Check whether a start time falls inside one of the doctor's enabled windows."""
        weekday, time_of_day = local_parts(start, self.policy.timezone)
        windows = await self.availability.get_windows(doctor_id, weekday)
        return any(w.is_available and w.contains(time_of_day) for w in windows)

    async def available_slots(
        self,
        doctor_id: UUID,
        day: date,
        now: datetime | None = None,
    ) -> list[datetime]:
        """
        List free appointment start times on a clinic-local calendar day.

        Starts are generated every ``slot_interval`` from each enabled
        window's start while still inside the window. Past starts and starts
        whose interval would overlap an active appointment are dropped.

        Args:
            doctor_id: Doctor to list
            day: Local calendar day
            now: Reference time, defaults to the current time

        Returns:
            Sorted UTC start times
        """
        now = as_utc(now) if now else utcnow()
        tz = self.policy.timezone
        day_start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
        windows = [
            w
            for w in await self.availability.get_windows(doctor_id, js_weekday(day_start))
            if w.is_available
        ]
        if not windows:
            return []

        booked = await self.appointments.find_overlapping(
            doctor_id,
            as_utc(day_start),
            as_utc(day_start + timedelta(days=1)),
            self.policy.duration_minutes,
        )

        slots: set[datetime] = set()
        for window in windows:
            cursor = datetime.combine(day, window.start_time, tzinfo=tz)
            window_end = datetime.combine(day, window.end_time, tzinfo=tz)
            while cursor < window_end:
                start = as_utc(cursor)
                end = start + self.policy.duration
                if start > now and not any(
                    appt.date < end and appt.date + self.policy.duration > start
                    for appt in booked
                ):
                    slots.add(start)
                cursor += self.policy.slot_interval

        return sorted(slots)
