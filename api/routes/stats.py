"""
Site statistics and data metadata endpoints
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from schemas.api import StatsResponse, DataMetadataInfo
from ingestion.metadata_store import get_data_metadata
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    request: Request,
    limit: int = Query(8, ge=1, le=50, description="Number of top occupations / metros to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get headline statistics.

    Returns:
    - Occupation, metro and indexable salary page counts
    - Top occupations by average median salary
    - Metros with the most occupations
    - Current data vintage
    """
    request_id = getattr(request.state, "request_id", "-")

    logger.info(f"[{request_id}] GET /stats - limit={limit}")

    occupation_count, metro_count, salary_pages = await queries.get_counts(db)
    top_occupations = await queries.get_top_occupations(db, limit=limit)
    top_metros = await queries.get_top_metros(db, limit=limit)
    data_metadata = await get_data_metadata(db)

    return StatsResponse(
        occupation_count=occupation_count,
        metro_count=metro_count,
        salary_pages=salary_pages,
        top_occupations=top_occupations,
        top_metros=top_metros,
        data_metadata=data_metadata
    )


@router.get("/metadata", response_model=DataMetadataInfo)
async def get_metadata(db: AsyncSession = Depends(get_db)):
    """Currently loaded BLS data period (default snapshot before first ingestion)"""
    return await get_data_metadata(db)
