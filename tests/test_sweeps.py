"""Tests for the reminder and missed-appointment sweeps."""

from datetime import timedelta

import pytest

from carebook.scheduling.engine import SchedulingEngine
from carebook.scheduling.policy import SchedulingPolicy
from carebook.scheduling.sweeps import AppointmentSweeper
from carebook.schemas.appointments import AppointmentStatus
from carebook.schemas.notifications import NotificationType
from carebook.stores.memory import InMemoryNotificationStore
from conftest import NOW, OTHER_PATIENT_ID, PATIENT_ID, monday_at


@pytest.fixture
def sweeper(engine: SchedulingEngine) -> AppointmentSweeper:
    return AppointmentSweeper(engine)


def reminders(store: InMemoryNotificationStore) -> list:
    return [n for n in store.all() if n.type == NotificationType.APPOINTMENT_REMINDER]


class FlakyNotificationStore(InMemoryNotificationStore):
    """Fails the next ``failures`` inserts."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 0

    async def create(self, notification):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("insert failed")
        return await super().create(notification)


@pytest.mark.asyncio
async def test_reminders_only_for_confirmed_within_window(
    engine: SchedulingEngine, sweeper, book, doctor, notification_store
) -> None:
    confirmed = await book(9)
    await engine.change_status(doctor, confirmed.id, AppointmentStatus.CONFIRMED)
    await book(11, patient_id=OTHER_PATIENT_ID)  # still pending

    sent = await sweeper.send_reminders(now=NOW)

    assert sent == 1
    [reminder] = reminders(notification_store)
    assert reminder.recipient_user_id == PATIENT_ID
    assert reminder.appointment_id == confirmed.id


@pytest.mark.asyncio
async def test_no_reminders_outside_window(
    engine: SchedulingEngine, sweeper, book, doctor, notification_store
) -> None:
    appointment = await book(10)
    await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)

    sent = await sweeper.send_reminders(now=monday_at(10) - timedelta(days=2))

    assert sent == 0
    assert reminders(notification_store) == []


@pytest.mark.asyncio
async def test_mark_missed_moves_elapsed_confirmed_to_no_show(
    engine: SchedulingEngine, sweeper, book, doctor, admin
) -> None:
    elapsed = await book(9)
    await engine.change_status(doctor, elapsed.id, AppointmentStatus.CONFIRMED)
    running = await book(10, patient_id=OTHER_PATIENT_ID)
    await engine.change_status(doctor, running.id, AppointmentStatus.CONFIRMED)

    # 10:30: the 09:00 visit is over, the 10:00 one is still in progress
    marked = await sweeper.mark_missed(now=monday_at(10, 30))

    assert marked == 1
    assert (await engine.get(admin, elapsed.id)).status == AppointmentStatus.NO_SHOW
    assert (await engine.get(admin, running.id)).status == AppointmentStatus.CONFIRMED


@pytest.mark.asyncio
async def test_mark_missed_ignores_pending_and_closed(
    engine: SchedulingEngine, sweeper, book, doctor, admin
) -> None:
    pending = await book(9)
    completed = await book(10, patient_id=OTHER_PATIENT_ID)
    await engine.change_status(doctor, completed.id, AppointmentStatus.CONFIRMED)
    await engine.change_status(doctor, completed.id, AppointmentStatus.COMPLETED)

    marked = await sweeper.mark_missed(now=monday_at(18))

    assert marked == 0
    assert (await engine.get(admin, pending.id)).status == AppointmentStatus.PENDING
    assert (await engine.get(admin, completed.id)).status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_mark_missed_notifies_when_policy_enabled(
    appointment_store, availability_store, notification_store, doctor
) -> None:
    engine = SchedulingEngine(
        appointment_store,
        availability_store,
        notification_store,
        SchedulingPolicy(notify_on_no_show=True),
    )
    appointment = await engine.book(PATIENT_ID, doctor.doctor_id, monday_at(9), now=NOW)
    await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)

    await AppointmentSweeper(engine).mark_missed(now=monday_at(12))

    no_shows = [
        n for n in notification_store.all() if n.type == NotificationType.APPOINTMENT_NO_SHOW
    ]
    assert [n.recipient_user_id for n in no_shows] == [PATIENT_ID]


@pytest.mark.asyncio
async def test_mark_missed_accepts_explicit_actor(
    engine: SchedulingEngine, sweeper, book, doctor, admin
) -> None:
    appointment = await book(9)
    await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)

    marked = await sweeper.mark_missed(now=monday_at(12), actor=admin)

    assert marked == 1
    stored = await engine.appointments.get_by_id(appointment.id)
    assert stored.status == AppointmentStatus.NO_SHOW


@pytest.mark.asyncio
async def test_sweeps_continue_past_a_failed_notification(
    appointment_store, availability_store, doctor
) -> None:
    store = FlakyNotificationStore()
    engine = SchedulingEngine(
        appointment_store,
        availability_store,
        store,
        SchedulingPolicy(notify_on_no_show=True),
    )
    for hour, patient_id in ((9, PATIENT_ID), (10, OTHER_PATIENT_ID)):
        appointment = await engine.book(patient_id, doctor.doctor_id, monday_at(hour), now=NOW)
        await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)
    sweeper = AppointmentSweeper(engine)

    store.failures = 1
    sent = await sweeper.send_reminders(now=NOW)
    store.failures = 1
    marked = await sweeper.mark_missed(now=monday_at(12))

    assert sent == 1
    assert [n.recipient_user_id for n in reminders(store)] == [OTHER_PATIENT_ID]
    assert marked == 2
    no_shows = [n for n in store.all() if n.type == NotificationType.APPOINTMENT_NO_SHOW]
    assert [n.recipient_user_id for n in no_shows] == [OTHER_PATIENT_ID]


@pytest.mark.asyncio
async def test_reminders_are_not_repeated(
    engine: SchedulingEngine, sweeper, book, doctor, notification_store
) -> None:
    appointment = await book(10)
    await engine.change_status(doctor, appointment.id, AppointmentStatus.CONFIRMED)

    first = await sweeper.send_reminders(now=NOW)
    second = await sweeper.send_reminders(now=NOW + timedelta(hours=1))

    assert first == 1
    assert second == 0
    assert len(reminders(notification_store)) == 1
