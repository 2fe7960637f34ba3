"""Script to initialize the metadata store without running migrations."""

import asyncio

from sqlalchemy import text

from app.config import settings
from app.database import create_engine
from app.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    engine = create_engine(settings)
    try:
        async with engine.begin() as conn:
            # Enable pgcrypto extension
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

            # Create all tables
            await conn.run_sync(metadata.create_all)
    finally:
        await engine.dispose()

    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
