"""Tests for turning appointment events into notifications."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from carebook.scheduling.notifications import (
    AppointmentEvent,
    EventKind,
    NotificationDispatcher,
)
from carebook.scheduling.policy import SchedulingPolicy
from carebook.schemas.appointments import Appointment, AppointmentStatus
from carebook.schemas.notifications import NotificationType
from carebook.stores.memory import InMemoryNotificationStore
from conftest import DOCTOR_ID, NOW, PATIENT_ID, monday_at


def make_appointment(**overrides) -> Appointment:
    values = {
        "id": uuid4(),
        "patient_id": PATIENT_ID,
        "doctor_id": DOCTOR_ID,
        "date": monday_at(10),
        "status": AppointmentStatus.CONFIRMED,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Appointment(**values)


@pytest.fixture
def dispatcher(notification_store, policy) -> NotificationDispatcher:
    return NotificationDispatcher(notification_store, policy)


def recipients(notifications) -> list:
    return [n.recipient_user_id for n in notifications]


def test_booking_goes_to_doctor(dispatcher: NotificationDispatcher) -> None:
    built = dispatcher.build(AppointmentEvent(EventKind.BOOKED, make_appointment()))

    assert recipients(built) == [DOCTOR_ID]
    assert built[0].type == NotificationType.NEW_APPOINTMENT
    assert built[0].title == "New Appointment Request"


@pytest.mark.parametrize(
    "kind,expected_type",
    [
        (EventKind.CONFIRMED, NotificationType.APPOINTMENT_CONFIRMATION),
        (EventKind.COMPLETED, NotificationType.APPOINTMENT_COMPLETION),
        (EventKind.REMINDER, NotificationType.APPOINTMENT_REMINDER),
    ],
)
def test_patient_facing_events(dispatcher: NotificationDispatcher, kind, expected_type) -> None:
    built = dispatcher.build(AppointmentEvent(kind, make_appointment()))

    assert recipients(built) == [PATIENT_ID]
    assert built[0].type == expected_type


def test_reschedule_goes_to_both_parties(dispatcher: NotificationDispatcher) -> None:
    event = AppointmentEvent(
        EventKind.RESCHEDULED,
        make_appointment(date=monday_at(11)),
        previous_date=monday_at(10),
    )

    built = dispatcher.build(event)

    assert recipients(built) == [PATIENT_ID, DOCTOR_ID]
    assert "Jan 07, 2030 at 10:00 AM" in built[0].message
    assert "Jan 07, 2030 at 11:00 AM" in built[0].message


def test_cancellation_skips_the_party_who_cancelled(
    dispatcher: NotificationDispatcher, patient, doctor, admin
) -> None:
    appointment = make_appointment(status=AppointmentStatus.CANCELLED)

    by_patient = dispatcher.build(AppointmentEvent(EventKind.CANCELLED, appointment, patient))
    by_doctor = dispatcher.build(AppointmentEvent(EventKind.CANCELLED, appointment, doctor))
    by_admin = dispatcher.build(AppointmentEvent(EventKind.CANCELLED, appointment, admin))

    assert recipients(by_patient) == [DOCTOR_ID]
    assert recipients(by_doctor) == [PATIENT_ID]
    assert recipients(by_admin) == [PATIENT_ID, DOCTOR_ID]


def test_cancellation_reason_in_message(dispatcher: NotificationDispatcher, doctor) -> None:
    appointment = make_appointment(
        status=AppointmentStatus.CANCELLED,
        cancel_reason="Doctor unavailable",
    )

    built = dispatcher.build(AppointmentEvent(EventKind.CANCELLED, appointment, doctor))

    assert built[0].message.endswith("has been cancelled: Doctor unavailable.")


def test_no_show_is_silent_by_default(dispatcher: NotificationDispatcher) -> None:
    built = dispatcher.build(AppointmentEvent(EventKind.NO_SHOW, make_appointment()))
    assert built == []


def test_no_show_notifies_patient_when_enabled(notification_store) -> None:
    dispatcher = NotificationDispatcher(
        notification_store, SchedulingPolicy(notify_on_no_show=True)
    )

    built = dispatcher.build(AppointmentEvent(EventKind.NO_SHOW, make_appointment()))

    assert recipients(built) == [PATIENT_ID]
    assert built[0].type == NotificationType.APPOINTMENT_NO_SHOW


def test_pending_has_no_status_event() -> None:
    assert AppointmentEvent.for_status(AppointmentStatus.PENDING, make_appointment(), None) is None


def test_dates_render_in_clinic_timezone(notification_store) -> None:
    dispatcher = NotificationDispatcher(
        notification_store, SchedulingPolicy(timezone=ZoneInfo("Asia/Kolkata"))
    )

    assert dispatcher.format_when(datetime(2030, 1, 7, 10, 0, tzinfo=UTC)) == (
        "Jan 07, 2030 at 03:30 PM"
    )


@pytest.mark.asyncio
async def test_dispatch_stores_notifications(
    dispatcher: NotificationDispatcher, notification_store: InMemoryNotificationStore
) -> None:
    appointment = make_appointment()

    stored = await dispatcher.dispatch(AppointmentEvent(EventKind.CONFIRMED, appointment))

    assert len(stored) == 1
    assert notification_store.all()[0].appointment_id == appointment.id
    assert not notification_store.all()[0].is_read


@pytest.mark.asyncio
async def test_dispatch_failure_is_swallowed(policy) -> None:
    """A broken notification store never surfaces to the caller."""
    store = AsyncMock()
    store.create.side_effect = ConnectionError("notifications table unavailable")
    dispatcher = NotificationDispatcher(store, policy)

    stored = await dispatcher.dispatch(
        AppointmentEvent(EventKind.RESCHEDULED, make_appointment(), previous_date=monday_at(9))
    )

    assert stored == []
    assert store.create.await_count == 2


@pytest.mark.asyncio
async def test_engine_change_survives_notification_failure(
    appointment_store, availability_store, policy, doctor
) -> None:
    from carebook.scheduling.engine import SchedulingEngine

    store = AsyncMock()
    store.create.side_effect = RuntimeError("boom")
    engine = SchedulingEngine(appointment_store, availability_store, store, policy)

    appointment = await engine.book(PATIENT_ID, DOCTOR_ID, monday_at(10), now=NOW)
    confirmed = await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)

    assert confirmed.status == AppointmentStatus.CONFIRMED
    assert (await appointment_store.get_by_id(appointment.id)).status == AppointmentStatus.CONFIRMED


@pytest.mark.asyncio
async def test_notification_inbox(notification_store: InMemoryNotificationStore) -> None:
    dispatcher = NotificationDispatcher(notification_store, SchedulingPolicy())
    for _ in range(3):
        await dispatcher.dispatch(AppointmentEvent(EventKind.CONFIRMED, make_appointment()))

    items, total, unread = await notification_store.list_for_user(PATIENT_ID, page_size=2)
    assert (len(items), total, unread) == (2, 3, 3)

    assert await notification_store.mark_read(items[0].id, PATIENT_ID)
    assert not await notification_store.mark_read(items[1].id, DOCTOR_ID)
    assert await notification_store.mark_all_read(PATIENT_ID) == 2

    _, total, unread = await notification_store.list_for_user(PATIENT_ID, unread_only=True)
    assert (total, unread) == (0, 0)
