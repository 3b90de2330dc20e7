"""
Create all tables and seed the data_metadata row
"""

import argparse
import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from datetime import date, datetime
from core.config import settings
from core.database import create_engine_from_settings, create_session_factory
from core.logging import setup_logging
# Import all models to ensure they are registered
from models import Base, DataMetadata, METADATA_ROW_ID

logger = logging.getLogger(__name__)


async def init_database(seed_metadata: bool = True):
    logger.info("Connecting to database...")
    engine = create_engine_from_settings()

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created successfully.")

        if seed_metadata:
            session_factory = create_session_factory(engine)
            async with session_factory() as session:
                existing = await session.get(DataMetadata, METADATA_ROW_ID)
                if existing is None:
                    now = datetime.utcnow()
                    session.add(DataMetadata(
                        id=METADATA_ROW_ID,
                        data_period=settings.DATA_PERIOD,
                        bls_release_date=(
                            date.fromisoformat(settings.BLS_RELEASE_DATE)
                            if settings.BLS_RELEASE_DATE else None
                        ),
                        last_ingested_at=now,
                        last_checked_at=now,
                        record_count=None,
                        source_url=settings.BLS_SOURCE_URL
                    ))
                    await session.commit()
                    logger.info(f"Seeded data_metadata with {settings.DATA_PERIOD}")
                else:
                    logger.info(f"data_metadata already set to {existing.data_period}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the salary database schema")
    parser.add_argument(
        "--no-seed",
        action="store_true",
        help="Do not insert the initial data_metadata row"
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(init_database(seed_metadata=not args.no_seed))
