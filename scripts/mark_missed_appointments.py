#!/usr/bin/env python3
"""
Mark confirmed appointments that have fully elapsed as NO_SHOW.

Usage:
    python scripts/mark_missed_appointments.py [--lookback-days N]
"""

import argparse
import asyncio
from datetime import timedelta

from carebook.database import AsyncSessionLocal, engine
from carebook.dependencies import get_policy
from carebook.middleware.logging import configure_logging
from carebook.scheduling.engine import SchedulingEngine
from carebook.scheduling.sweeps import AppointmentSweeper
from carebook.stores.sql import SqlAppointmentStore, SqlAvailabilityStore, SqlNotificationStore


async def main(lookback_days: int) -> int:
    async with AsyncSessionLocal() as session:
        scheduler = SchedulingEngine(
            SqlAppointmentStore(session),
            SqlAvailabilityStore(session),
            SqlNotificationStore(session),
            get_policy(),
        )
        sweeper = AppointmentSweeper(scheduler, lookback=timedelta(days=lookback_days))
        marked = await sweeper.mark_missed()

    await engine.dispose()
    return marked


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Mark missed appointments as NO_SHOW")
    parser.add_argument(
        "--lookback-days",
        type=int,
        default=30,
        help="How far back to look for confirmed appointments (default: 30)",
    )
    args = parser.parse_args()

    configure_logging()
    count = asyncio.run(main(args.lookback_days))
    print(f"✓ Marked {count} appointment(s) as missed")
