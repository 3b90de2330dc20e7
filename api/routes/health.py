"""
Health check endpoint with database, ingestion and data vintage status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, IngestionRunInfo, DataMetadataInfo
from ingestion.base import get_latest_run
from ingestion.metadata_store import get_data_metadata
from core.exceptions import ETLException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Latest ingestion run
    - Currently loaded data period
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {str(e)}")

    latest_run = None
    data_metadata = None

    if db_connected:
        try:
            run = await get_latest_run(db)
            if run is not None:
                latest_run = IngestionRunInfo.model_validate(run)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch latest ingestion run: {str(e)}")
            await db.rollback()

        try:
            data_metadata: DataMetadataInfo = await get_data_metadata(db)
        except (SQLAlchemyError, ETLException) as e:
            logger.error(f"Failed to fetch data metadata: {str(e)}")

    # Status calculation is handled by the validator in HealthCheckResponse
    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        latest_run=latest_run,
        data_metadata=data_metadata
    )
