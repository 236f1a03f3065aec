"""PostgreSQL store implementations over SQLAlchemy Core."""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.exceptions import AppointmentNotFoundException
from carebook.models.appointments import appointments
from carebook.models.availability import availability_windows
from carebook.models.notifications import notifications
from carebook.schemas.appointments import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentFilters,
    AppointmentStatus,
)
from carebook.schemas.availability import AvailabilityWindow
from carebook.schemas.notifications import Notification, NotificationType

logger = structlog.get_logger(__name__)


def _column_values(values: dict[str, Any]) -> dict[str, Any]:
    """Convert enum members to their stored text."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in values.items()}


class SqlAvailabilityStore:
    """Availability windows in the ``availability_windows`` table."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def get_windows(self, doctor_id: UUID, weekday: int) -> list[AvailabilityWindow]:
        stmt = (
            select(availability_windows)
            .where(
                availability_windows.c.doctor_id == doctor_id,
                availability_windows.c.weekday == weekday,
            )
            .order_by(availability_windows.c.start_time)
        )
        result = await self.db.execute(stmt)
        return [AvailabilityWindow.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def list_windows(self, doctor_id: UUID) -> list[AvailabilityWindow]:
        stmt = (
            select(availability_windows)
            .where(availability_windows.c.doctor_id == doctor_id)
            .order_by(availability_windows.c.weekday, availability_windows.c.start_time)
        )
        result = await self.db.execute(stmt)
        return [AvailabilityWindow.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def replace_windows(
        self,
        doctor_id: UUID,
        windows: Iterable[AvailabilityWindow],
    ) -> list[AvailabilityWindow]:
        """
        Replace a doctor's weekly schedule in one transaction.

        Args:
            doctor_id: Doctor whose schedule is replaced
            windows: New windows

        Returns:
            Stored windows
        """
        rows = [
            {
                "doctor_id": doctor_id,
                "weekday": window.weekday,
                "start_time": window.start_time,
                "end_time": window.end_time,
                "is_available": window.is_available,
            }
            for window in windows
        ]

        await self.db.execute(
            delete(availability_windows).where(availability_windows.c.doctor_id == doctor_id)
        )
        if rows:
            await self.db.execute(insert(availability_windows).values(rows))
        await self.db.commit()

        logger.info("availability_replaced", doctor_id=str(doctor_id), windows=len(rows))
        return await self.list_windows(doctor_id)


class SqlAppointmentStore:
    """Appointments in the ``appointments`` table."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    @asynccontextmanager
    async def doctor_transaction(self, doctor_id: UUID) -> AsyncIterator[None]:
        """
        Hold a transaction-scoped advisory lock on the doctor.

        The lock is released by the commit or rollback that ends the block,
        so concurrent bookings for one doctor run their check and write one
        after the other.
        """
        await self.db.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(f"doctor:{doctor_id}")))
        )
        try:
            yield
        except BaseException:
            await self.db.rollback()
            raise
        await self.db.commit()

    async def get_by_id(self, appointment_id: UUID) -> Appointment | None:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()
        if not row:
            return None
        return Appointment.model_validate(dict(row._mapping))

    async def find_overlapping(
        self,
        doctor_id: UUID,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> list[Appointment]:
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.status.in_([status.value for status in ACTIVE_STATUSES]),
            appointments.c.date < end,
            appointments.c.date > start - timedelta(minutes=duration_minutes),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        result = await self.db.execute(select(appointments).where(and_(*conditions)))
        return [Appointment.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def find_in_range(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        stmt = (
            select(appointments)
            .where(
                appointments.c.status.in_([status.value for status in statuses]),
                appointments.c.date >= start,
                appointments.c.date < end,
            )
            .order_by(appointments.c.date)
        )
        result = await self.db.execute(stmt)
        return [Appointment.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def search(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.from_date:
            conditions.append(appointments.c.date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.date <= filters.to_date)

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(*conditions)
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Get paginated results
        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(*conditions)
            .order_by(appointments.c.date.desc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [Appointment.model_validate(dict(row._mapping)) for row in result.fetchall()]
        return items, total

    async def create(self, appointment: Appointment) -> Appointment:
        stmt = (
            insert(appointments)
            .values(**_column_values(appointment.model_dump()))
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return Appointment.model_validate(dict(row._mapping))

    async def update(self, appointment_id: UUID, fields: dict[str, Any]) -> Appointment:
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**_column_values(fields))
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        if not row:
            raise AppointmentNotFoundException()
        return Appointment.model_validate(dict(row._mapping))

    async def delete(self, appointment_id: UUID) -> bool:
        result = await self.db.execute(
            delete(appointments).where(appointments.c.id == appointment_id)
        )
        return result.rowcount > 0


class SqlNotificationStore:
    """Notifications in the ``notifications`` table."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def create(self, notification: Notification) -> Notification:
        """
        Store one notification and commit it.

        A failed insert is rolled back before the error propagates, so the
        shared session stays usable for the rest of a dispatch or sweep.
        """
        stmt = (
            insert(notifications)
            .values(**_column_values(notification.model_dump()))
            .returning(notifications)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return Notification.model_validate(dict(row._mapping))

    async def list_for_user(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int, int]:
        """
        Get notification history for a user.

        Args:
            user_id: Recipient user ID
            page: Page number (1-indexed)
            page_size: Number of items per page
            unread_only: Only return unread notifications

        Returns:
            Tuple of (notifications, total, unread)
        """
        query = select(notifications).where(notifications.c.recipient_user_id == user_id)
        if unread_only:
            query = query.where(notifications.c.is_read.is_(False))

        total_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar_one()

        unread_result = await self.db.execute(
            select(func.count())
            .select_from(notifications)
            .where(
                notifications.c.recipient_user_id == user_id,
                notifications.c.is_read.is_(False),
            )
        )
        unread = unread_result.scalar_one()

        query = (
            query.order_by(notifications.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await self.db.execute(query)
        items = [Notification.model_validate(dict(row._mapping)) for row in result.fetchall()]
        return items, total, unread

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            update(notifications)
            .where(
                notifications.c.id == notification_id,
                notifications.c.recipient_user_id == user_id,
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self.db.execute(
            update(notifications)
            .where(
                notifications.c.recipient_user_id == user_id,
                notifications.c.is_read.is_(False),
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount

    async def exists_for_appointment(
        self, appointment_id: UUID, notification_type: NotificationType
    ) -> bool:
        stmt = select(
            select(notifications.c.id)
            .where(
                notifications.c.appointment_id == appointment_id,
                notifications.c.type == notification_type.value,
            )
            .exists()
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())
