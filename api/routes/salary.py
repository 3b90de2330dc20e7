"""
Salary page endpoint (one occupation in one metro)
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from schemas.api import ErrorResponse, SalaryDetailResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Salary"])


@router.get(
    "/salary/{occupation_slug}/{location_slug}",
    response_model=SalaryDetailResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_salary(
    occupation_slug: str,
    location_slug: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Salary page data.

    Includes up to six other occupations in the same metro and up to six
    other metros for the same occupation, both ordered by median salary.
    """
    page = await queries.get_salary_page(db, occupation_slug, location_slug)
    if page is None:
        logger.info(f"Salary page not found: {occupation_slug}/{location_slug}")
        raise HTTPException(
            status_code=404,
            detail=f"No salary data for '{occupation_slug}' in '{location_slug}'"
        )

    occupation, metro, salary = page
    related = await queries.get_related_occupations(db, metro.id, occupation.id)
    others = await queries.get_other_locations(db, occupation.id, metro.id)

    return SalaryDetailResponse(
        occupation=occupation,
        metro=metro,
        salary=salary,
        related_occupations=related,
        other_locations=others
    )
