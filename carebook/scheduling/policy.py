"""Scheduling policy values."""

from dataclasses import dataclass, field
from datetime import timedelta
from zoneinfo import ZoneInfo

from carebook.config import Settings


@dataclass(frozen=True)
class SchedulingPolicy:
    """Clinic-wide rules the engine applies to every appointment."""

    duration: timedelta = timedelta(hours=1)
    slot_interval: timedelta = timedelta(minutes=30)
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    notify_on_no_show: bool = False
    reminder_window: timedelta = timedelta(hours=24)

    @property
    def duration_minutes(self) -> int:
        """Appointment length in whole minutes."""
        return int(self.duration.total_seconds() // 60)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingPolicy":
        """Build the policy from application settings."""
        return cls(
            duration=timedelta(minutes=settings.appointment_duration_minutes),
            slot_interval=timedelta(minutes=settings.slot_interval_minutes),
            timezone=ZoneInfo(settings.clinic_timezone),
            notify_on_no_show=settings.notify_on_no_show,
            reminder_window=timedelta(hours=settings.reminder_window_hours),
        )
