"""
Occupation index and occupation detail endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from schemas.api import ErrorResponse, OccupationDetailResponse, OccupationListResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Occupations"])


@router.get("/occupations", response_model=OccupationListResponse)
async def list_occupations(db: AsyncSession = Depends(get_db)):
    """Occupations with at least one indexable salary page, ordered by title"""
    occupations = await queries.list_occupations(db)
    return OccupationListResponse(total=len(occupations), occupations=occupations)


@router.get(
    "/occupations/{slug}",
    response_model=OccupationDetailResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_occupation(slug: str, db: AsyncSession = Depends(get_db)):
    """
    Occupation page data.

    Returns the occupation, national stats over indexable metros, and the
    per-metro salaries ordered by median (highest first).
    """
    occupation = await queries.get_occupation_by_slug(db, slug)
    if occupation is None:
        logger.info(f"Occupation not found: {slug}")
        raise HTTPException(status_code=404, detail=f"No occupation with slug '{slug}'")

    stats = await queries.get_occupation_stats(db, occupation.id)
    salaries = await queries.get_salaries_by_metro(db, occupation.id)

    return OccupationDetailResponse(occupation=occupation, stats=stats, salaries=salaries)
