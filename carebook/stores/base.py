"""Storage interfaces consumed by the scheduling engine."""

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from carebook.schemas.appointments import Appointment, AppointmentFilters, AppointmentStatus
from carebook.schemas.availability import AvailabilityWindow
from carebook.schemas.notifications import Notification, NotificationType


class AvailabilityStore(Protocol):
    """Doctors' weekly availability windows."""

    async def get_windows(self, doctor_id: UUID, weekday: int) -> list[AvailabilityWindow]:
        """Windows of a doctor on one weekday, enabled or not."""
        ...

    async def list_windows(self, doctor_id: UUID) -> list[AvailabilityWindow]:
        """Every window of a doctor ordered by weekday and start time."""
        ...

    async def replace_windows(
        self,
        doctor_id: UUID,
        windows: Iterable[AvailabilityWindow],
    ) -> list[AvailabilityWindow]:
        """Replace a doctor's whole weekly schedule."""
        ...


class AppointmentStore(Protocol):
    """Appointment records keyed by id."""

    def doctor_transaction(self, doctor_id: UUID) -> AbstractAsyncContextManager[None]:
        """
        Atomic unit scoped to one doctor's appointments.

        Check-then-write sequences for the same doctor must not interleave
        while this context is held. Backends with transactions commit on a
        clean exit and roll back if the block raises.
        """
        ...

    async def get_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Load one appointment."""
        ...

    async def find_overlapping(
        self,
        doctor_id: UUID,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> list[Appointment]:
        """Active appointments of a doctor whose interval intersects [start, end)."""
        ...

    async def find_in_range(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        """Appointments of any doctor starting in [start, end) with one of the statuses."""
        ...

    async def search(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        """Filtered page of appointments plus the total match count."""
        ...

    async def create(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment."""
        ...

    async def update(self, appointment_id: UUID, fields: dict[str, Any]) -> Appointment:
        """Apply field changes to an appointment and return the new state."""
        ...

    async def delete(self, appointment_id: UUID) -> bool:
        """Hard delete an appointment."""
        ...


class NotificationStore(Protocol):
    """Notification records."""

    async def create(self, notification: Notification) -> Notification:
        """Persist a notification."""
        ...

    async def list_for_user(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int, int]:
        """Page of a user's notifications, newest first, with total and unread counts."""
        ...

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """Mark one of the user's notifications as read."""
        ...

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read."""
        ...

    async def exists_for_appointment(
        self, appointment_id: UUID, notification_type: NotificationType
    ) -> bool:
        """Whether a notification of this type was already stored for the appointment."""
        ...
