"""
Read and touch the singleton data_metadata row
"""

from datetime import date, datetime
from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from models.metadata import DataMetadata, METADATA_ROW_ID
from schemas.api import DataMetadataInfo
from core.retry import is_missing_table_error, retry_read
import logging

logger = logging.getLogger(__name__)

DEFAULT_DATA_PERIOD = "May 2024"
DEFAULT_RELEASE_DATE = date(2025, 4, 2)
DEFAULT_RECORD_COUNT = 141164


def default_metadata() -> DataMetadataInfo:
    """Snapshot served before the first ingestion has populated the table"""
    now = datetime.utcnow()
    return DataMetadataInfo(
        data_period=DEFAULT_DATA_PERIOD,
        bls_release_date=DEFAULT_RELEASE_DATE,
        last_ingested_at=now,
        last_checked_at=now,
        record_count=DEFAULT_RECORD_COUNT,
        source_url=None,
        is_default=True,
    )


def period_year(period: str) -> int:
    """Year of a "May YYYY" data period"""
    return int(period.strip().split()[-1])


async def get_data_metadata(session: AsyncSession) -> DataMetadataInfo:
    """
    Current data metadata.

    Falls back to the default snapshot when the table does not exist yet
    or holds no row. Transient errors are retried; anything else propagates.
    """
    async def _load():
        result = await session.execute(
            select(DataMetadata).where(DataMetadata.id == METADATA_ROW_ID)
        )
        return result.scalar_one_or_none()

    try:
        row = await retry_read(_load, session=session, description="data metadata read")
    except DBAPIError as e:
        if not is_missing_table_error(e):
            raise
        logger.info("data_metadata table does not exist yet, using default snapshot")
        await session.rollback()
        return default_metadata()

    if row is None:
        return default_metadata()
    return DataMetadataInfo.model_validate(row)


async def update_last_checked(session: AsyncSession) -> bool:
    """
    Set last_checked_at to now on the metadata row.

    Returns False when there is no row or no table to touch.
    """
    try:
        result = await session.execute(
            update(DataMetadata)
            .where(DataMetadata.id == METADATA_ROW_ID)
            .values(last_checked_at=datetime.utcnow())
        )
        await session.commit()
    except DBAPIError as e:
        await session.rollback()
        if is_missing_table_error(e):
            logger.info("data_metadata table does not exist yet, last_checked_at not recorded")
            return False
        raise

    return bool(result.rowcount)
