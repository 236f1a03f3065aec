#!/usr/bin/env python3
"""
Send reminders for confirmed appointments starting within the reminder window.

Usage:
    python scripts/send_appointment_reminders.py

Appointments that already have a reminder are skipped, so it is safe to
run more often than once per reminder window, for instance hourly from cron.
"""

import asyncio

from carebook.database import AsyncSessionLocal, engine
from carebook.dependencies import get_policy
from carebook.middleware.logging import configure_logging
from carebook.scheduling.engine import SchedulingEngine
from carebook.scheduling.sweeps import AppointmentSweeper
from carebook.stores.sql import SqlAppointmentStore, SqlAvailabilityStore, SqlNotificationStore


async def main() -> int:
    async with AsyncSessionLocal() as session:
        scheduler = SchedulingEngine(
            SqlAppointmentStore(session),
            SqlAvailabilityStore(session),
            SqlNotificationStore(session),
            get_policy(),
        )
        sent = await AppointmentSweeper(scheduler).send_reminders()

    await engine.dispose()
    return sent


if __name__ == "__main__":
    configure_logging()
    count = asyncio.run(main())
    print(f"✓ Sent {count} appointment reminder(s)")
