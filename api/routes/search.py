"""
Search endpoint for occupations, locations and salary pages
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from schemas.api import SearchResponse, SearchResult
from core.exceptions import ETLException
from typing import Optional
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Search"])


@router.get("/api/search", response_model=SearchResponse)
async def search(
    q: Optional[str] = Query(None, description="Occupation title or slug fragment"),
    location: Optional[str] = Query(None, description="Metro title, slug or state fragment"),
    db: AsyncSession = Depends(get_db)
):
    """
    Search.

    - q and location: salary pages matching both (up to 20, by employment)
    - q: occupations (up to 10, prefix matches first)
    - location, or q when location is empty: metros (up to 10)
    """
    q = (q or "").strip()
    location = (location or "").strip()

    response = SearchResponse()
    if not q and not location:
        return response

    try:
        if q and location:
            for hit in await queries.search_salaries(db, q, location):
                response.results.append(SearchResult(
                    type="salary",
                    title=hit.occ_title,
                    subtitle=hit.area_title,
                    href=f"/salary/{hit.occ_slug}/{hit.metro_slug}",
                    a_median=hit.a_median
                ))

        if q:
            response.occupations = await queries.search_occupations(db, q)
            for hit in response.occupations:
                response.results.append(SearchResult(
                    type="occupation",
                    title=hit.occ_title,
                    subtitle="View salary data across all locations",
                    href=f"/occupations/{hit.slug}"
                ))

        response.locations = await queries.search_locations(db, location or q)
        for hit in response.locations:
            response.results.append(SearchResult(
                type="location",
                title=hit.area_title,
                subtitle=hit.state_abbr or "View all salaries in this area",
                href=f"/locations/{hit.slug}"
            ))

    except (SQLAlchemyError, ETLException) as e:
        logger.error(f"Search failed for q={q!r} location={location!r}: {e}")
        return JSONResponse(
            status_code=500,
            content=SearchResponse(error="Search failed").model_dump()
        )

    return response
