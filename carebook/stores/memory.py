"""In-process store implementations."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from carebook.core.exceptions import AppointmentNotFoundException
from carebook.schemas.appointments import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentFilters,
    AppointmentStatus,
)
from carebook.schemas.availability import AvailabilityWindow
from carebook.schemas.notifications import Notification, NotificationType


class InMemoryAvailabilityStore:
    """Availability windows held in a dict keyed by doctor."""

    def __init__(self) -> None:
        self._windows: dict[UUID, list[AvailabilityWindow]] = defaultdict(list)

    async def get_windows(self, doctor_id: UUID, weekday: int) -> list[AvailabilityWindow]:
        return [w for w in self._windows.get(doctor_id, []) if w.weekday == weekday]

    async def list_windows(self, doctor_id: UUID) -> list[AvailabilityWindow]:
        return sorted(
            self._windows.get(doctor_id, []),
            key=lambda w: (w.weekday, w.start_time),
        )

    async def replace_windows(
        self,
        doctor_id: UUID,
        windows: Iterable[AvailabilityWindow],
    ) -> list[AvailabilityWindow]:
        self._windows[doctor_id] = [w.model_copy(update={"doctor_id": doctor_id}) for w in windows]
        return await self.list_windows(doctor_id)

    def add_window(self, window: AvailabilityWindow) -> None:
        """Append a single window (seeding helper)."""
        self._windows[window.doctor_id].append(window)


class InMemoryAppointmentStore:
    """Appointments held in a dict, serialized per doctor with asyncio locks."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Appointment] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}

    @asynccontextmanager
    async def doctor_transaction(self, doctor_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(doctor_id, asyncio.Lock())
        async with lock:
            yield

    async def get_by_id(self, appointment_id: UUID) -> Appointment | None:
        row = self._rows.get(appointment_id)
        return row.model_copy() if row else None

    async def find_overlapping(
        self,
        doctor_id: UUID,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> list[Appointment]:
        duration = timedelta(minutes=duration_minutes)
        return [
            row.model_copy()
            for row in self._rows.values()
            if row.doctor_id == doctor_id
            and row.status in ACTIVE_STATUSES
            and row.id != exclude_id
            and row.date < end
            and row.date + duration > start
        ]

    async def find_in_range(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        wanted = set(statuses)
        rows = [
            row.model_copy()
            for row in self._rows.values()
            if row.status in wanted and start <= row.date < end
        ]
        return sorted(rows, key=lambda row: row.date)

    async def search(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        rows = [row for row in self._rows.values() if _matches(row, filters)]
        rows.sort(key=lambda row: row.date, reverse=True)
        offset = (filters.page - 1) * filters.page_size
        page = rows[offset : offset + filters.page_size]
        return [row.model_copy() for row in page], len(rows)

    async def create(self, appointment: Appointment) -> Appointment:
        self._rows[appointment.id] = appointment.model_copy()
        return appointment.model_copy()

    async def update(self, appointment_id: UUID, fields: dict[str, Any]) -> Appointment:
        row = self._rows.get(appointment_id)
        if row is None:
            raise AppointmentNotFoundException()
        updated = Appointment.model_validate({**row.model_dump(), **fields})
        self._rows[appointment_id] = updated
        return updated.model_copy()

    async def delete(self, appointment_id: UUID) -> bool:
        return self._rows.pop(appointment_id, None) is not None


def _matches(row: Appointment, filters: AppointmentFilters) -> bool:
    if filters.status and row.status != filters.status:
        return False
    if filters.doctor_id and row.doctor_id != filters.doctor_id:
        return False
    if filters.patient_id and row.patient_id != filters.patient_id:
        return False
    if filters.from_date and row.date < filters.from_date:
        return False
    if filters.to_date and row.date > filters.to_date:
        return False
    return True


class InMemoryNotificationStore:
    """Notifications held in insertion order."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Notification] = {}

    async def create(self, notification: Notification) -> Notification:
        self._rows[notification.id] = notification.model_copy()
        return notification.model_copy()

    async def list_for_user(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int, int]:
        mine = [n for n in self._rows.values() if n.recipient_user_id == user_id]
        unread = sum(1 for n in mine if not n.is_read)
        if unread_only:
            mine = [n for n in mine if not n.is_read]
        mine.sort(key=lambda n: n.created_at, reverse=True)
        offset = (page - 1) * page_size
        return [n.model_copy() for n in mine[offset : offset + page_size]], len(mine), unread

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        row = self._rows.get(notification_id)
        if row is None or row.recipient_user_id != user_id:
            return False
        self._rows[notification_id] = row.model_copy(update={"is_read": True})
        return True

    async def mark_all_read(self, user_id: UUID) -> int:
        count = 0
        for key, row in self._rows.items():
            if row.recipient_user_id == user_id and not row.is_read:
                self._rows[key] = row.model_copy(update={"is_read": True})
                count += 1
        return count

    async def exists_for_appointment(
        self, appointment_id: UUID, notification_type: NotificationType
    ) -> bool:
        return any(
            n.appointment_id == appointment_id and n.type == notification_type
            for n in self._rows.values()
        )

    def all(self) -> list[Notification]:
        """Every stored notification in insertion order."""
        return [n.model_copy() for n in self._rows.values()]
