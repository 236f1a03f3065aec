"""Script to initialize the database."""

import asyncio

from sqlalchemy import text

from carebook.database import engine
from carebook.models.appointments import metadata as appointments_metadata
from carebook.models.availability import metadata as availability_metadata
from carebook.models.notifications import metadata as notifications_metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        # gen_random_uuid() lives in pgcrypto on older PostgreSQL releases
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        for metadata in (appointments_metadata, availability_metadata, notifications_metadata):
            await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
