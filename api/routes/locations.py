"""
Metro area index and location detail endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from schemas.api import ErrorResponse, LocationDetailResponse, LocationListResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Locations"])


@router.get("/locations", response_model=LocationListResponse)
async def list_locations(db: AsyncSession = Depends(get_db)):
    """Metros with at least one indexable salary page, ordered by state then title"""
    locations = await queries.list_locations(db)
    return LocationListResponse(total=len(locations), locations=locations)


@router.get(
    "/locations/{slug}",
    response_model=LocationDetailResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_location(slug: str, db: AsyncSession = Depends(get_db)):
    metro = await queries.get_metro_by_slug(db, slug)
    if metro is None:
        logger.info(f"Location not found: {slug}")
        raise HTTPException(status_code=404, detail=f"No location with slug '{slug}'")

    stats = await queries.get_location_stats(db, metro.id)
    salaries = await queries.get_salaries_by_occupation(db, metro.id)

    return LocationDetailResponse(metro=metro, stats=stats, salaries=salaries)
