"""
Read-only queries behind the API routes.

Every query runs through retry_read so transient connection pressure
(too many connections, serialization failures) is retried with linear
backoff before surfacing.
"""

from typing import List, Optional, Tuple
from sqlalchemy import and_, case, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from models.occupation import Occupation
from models.metro import Metro
from models.salary import SalaryFact
from schemas.api import (
    LocationListItem,
    LocationSearchHit,
    LocationStats,
    MetroInfo,
    MetroSalaryItem,
    OccupationInfo,
    OccupationListItem,
    OccupationNationalStats,
    OccupationSalaryItem,
    OccupationSearchHit,
    RelatedSalary,
    SalaryFigures,
    TopMetro,
    TopOccupation,
)
from core.retry import retry_read

RELATED_LIMIT = 6
TOP_LIMIT = 8
SEARCH_SALARY_LIMIT = 20
SEARCH_ENTITY_LIMIT = 10


def _round(value) -> Optional[float]:
    return round(float(value)) if value is not None else None


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _int(value) -> Optional[int]:
    return int(value) if value is not None else None


# ============================================================================
# Home page / stats
# ============================================================================

async def get_counts(db: AsyncSession) -> Tuple[int, int, int]:
    """(occupations, metros, indexable salary pages)"""
    async def _run():
        occupations = await db.scalar(select(func.count()).select_from(Occupation))
        metros = await db.scalar(select(func.count()).select_from(Metro))
        salary_pages = await db.scalar(
            select(func.count()).select_from(SalaryFact).where(SalaryFact.is_indexable.is_(True))
        )
        return occupations or 0, metros or 0, salary_pages or 0

    return await retry_read(_run, session=db, description="site counts")


async def get_top_occupations(db: AsyncSession, limit: int = TOP_LIMIT) -> List[TopOccupation]:
    """Occupations with the highest average median across indexable metros"""
    avg_median = func.round(func.avg(SalaryFact.a_median))
    stmt = (
        select(
            Occupation.occ_title,
            Occupation.slug,
            avg_median.label("avg_median"),
            func.count(distinct(SalaryFact.metro_id)).label("metro_count"),
        )
        .join(SalaryFact, SalaryFact.occupation_id == Occupation.id)
        .where(SalaryFact.is_indexable.is_(True), SalaryFact.a_median.isnot(None))
        .group_by(Occupation.id, Occupation.occ_title, Occupation.slug)
        .order_by(avg_median.desc())
        .limit(limit)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="top occupations")
    return [
        TopOccupation(
            occ_title=r.occ_title,
            slug=r.slug,
            avg_median=_round(r.avg_median),
            metro_count=r.metro_count,
        )
        for r in rows
    ]


async def get_top_metros(db: AsyncSession, limit: int = TOP_LIMIT) -> List[TopMetro]:
    """Metros with the most indexable occupations"""
    occ_count = func.count(distinct(SalaryFact.occupation_id))
    stmt = (
        select(
            Metro.area_title,
            Metro.slug,
            Metro.state_abbr,
            occ_count.label("occupation_count"),
        )
        .join(SalaryFact, SalaryFact.metro_id == Metro.id)
        .where(SalaryFact.is_indexable.is_(True))
        .group_by(Metro.id, Metro.area_title, Metro.slug, Metro.state_abbr)
        .order_by(occ_count.desc())
        .limit(limit)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="top metros")
    return [
        TopMetro(
            area_title=r.area_title,
            slug=r.slug,
            state_abbr=r.state_abbr,
            occupation_count=r.occupation_count,
        )
        for r in rows
    ]


# ============================================================================
# Occupations
# ============================================================================

async def list_occupations(db: AsyncSession) -> List[OccupationListItem]:
    """Occupations with at least one indexable salary page, by title"""
    metro_count = func.count(distinct(SalaryFact.metro_id))
    stmt = (
        select(
            Occupation.id,
            Occupation.occ_code,
            Occupation.occ_title,
            Occupation.slug,
            func.round(func.avg(SalaryFact.a_median)).label("avg_median"),
            metro_count.label("metro_count"),
        )
        .outerjoin(
            SalaryFact,
            and_(SalaryFact.occupation_id == Occupation.id, SalaryFact.is_indexable.is_(True)),
        )
        .group_by(Occupation.id, Occupation.occ_code, Occupation.occ_title, Occupation.slug)
        .having(metro_count > 0)
        .order_by(Occupation.occ_title.asc())
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="occupation list")
    return [
        OccupationListItem(
            id=r.id,
            occ_code=r.occ_code,
            occ_title=r.occ_title,
            slug=r.slug,
            avg_median=_round(r.avg_median),
            metro_count=r.metro_count,
        )
        for r in rows
    ]


async def get_occupation_by_slug(db: AsyncSession, slug: str) -> Optional[OccupationInfo]:
    async def _run():
        result = await db.execute(select(Occupation).where(Occupation.slug == slug))
        return result.scalar_one_or_none()

    occupation = await retry_read(_run, session=db, description="occupation lookup")
    return OccupationInfo.model_validate(occupation) if occupation else None


async def get_occupation_stats(db: AsyncSession, occupation_id: int) -> OccupationNationalStats:
    stmt = select(
        func.round(func.avg(SalaryFact.a_median)).label("avg_median"),
        func.min(SalaryFact.a_median).label("min_median"),
        func.max(SalaryFact.a_median).label("max_median"),
        func.sum(SalaryFact.tot_emp).label("total_employment"),
        func.count().label("metro_count"),
    ).where(
        SalaryFact.occupation_id == occupation_id,
        SalaryFact.is_indexable.is_(True),
        SalaryFact.a_median.isnot(None),
    )

    async def _run():
        return (await db.execute(stmt)).one()

    r = await retry_read(_run, session=db, description="occupation stats")
    return OccupationNationalStats(
        avg_median=_round(r.avg_median),
        min_median=_float(r.min_median),
        max_median=_float(r.max_median),
        total_employment=_int(r.total_employment),
        metro_count=r.metro_count or 0,
    )


async def get_salaries_by_metro(db: AsyncSession, occupation_id: int) -> List[MetroSalaryItem]:
    stmt = (
        select(
            Metro.id.label("metro_id"),
            Metro.area_title,
            Metro.slug.label("metro_slug"),
            Metro.state_abbr,
            SalaryFact.a_median,
            SalaryFact.a_mean,
            SalaryFact.tot_emp,
        )
        .select_from(SalaryFact)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(SalaryFact.occupation_id == occupation_id, SalaryFact.is_indexable.is_(True))
        .order_by(SalaryFact.a_median.desc().nulls_last(), Metro.area_title)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="salaries by metro")
    return [MetroSalaryItem(**r._mapping) for r in rows]


# ============================================================================
# Locations
# ============================================================================

async def list_locations(db: AsyncSession) -> List[LocationListItem]:
    """Metros with at least one indexable salary page, by state then title"""
    occ_count = func.count(distinct(SalaryFact.occupation_id))
    stmt = (
        select(
            Metro.id,
            Metro.area_code,
            Metro.area_title,
            Metro.slug,
            Metro.state_abbr,
            occ_count.label("occupation_count"),
            func.max(SalaryFact.a_median).label("top_salary"),
        )
        .outerjoin(
            SalaryFact,
            and_(SalaryFact.metro_id == Metro.id, SalaryFact.is_indexable.is_(True)),
        )
        .group_by(Metro.id, Metro.area_code, Metro.area_title, Metro.slug, Metro.state_abbr)
        .having(occ_count > 0)
        .order_by(Metro.state_abbr.asc().nulls_last(), Metro.area_title.asc())
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="location list")
    return [
        LocationListItem(
            id=r.id,
            area_code=r.area_code,
            area_title=r.area_title,
            slug=r.slug,
            state_abbr=r.state_abbr,
            occupation_count=r.occupation_count,
            top_salary=_float(r.top_salary),
        )
        for r in rows
    ]


async def get_metro_by_slug(db: AsyncSession, slug: str) -> Optional[MetroInfo]:
    async def _run():
        result = await db.execute(select(Metro).where(Metro.slug == slug))
        return result.scalar_one_or_none()

    metro = await retry_read(_run, session=db, description="metro lookup")
    return MetroInfo.model_validate(metro) if metro else None


async def get_location_stats(db: AsyncSession, metro_id: int) -> LocationStats:
    ranked = aliased(SalaryFact)
    top_occupation = (
        select(Occupation.occ_title)
        .join(ranked, ranked.occupation_id == Occupation.id)
        .where(ranked.metro_id == metro_id, ranked.is_indexable.is_(True))
        .order_by(ranked.a_median.desc().nulls_last(), Occupation.occ_title)
        .limit(1)
        .scalar_subquery()
    )
    stmt = select(
        func.round(func.avg(SalaryFact.a_median)).label("avg_median"),
        func.max(SalaryFact.a_median).label("top_salary"),
        func.count(distinct(SalaryFact.occupation_id)).label("occupation_count"),
        func.sum(SalaryFact.tot_emp).label("total_employment"),
        top_occupation.label("top_occupation"),
    ).where(
        SalaryFact.metro_id == metro_id,
        SalaryFact.is_indexable.is_(True),
        SalaryFact.a_median.isnot(None),
    )

    async def _run():
        return (await db.execute(stmt)).one()

    r = await retry_read(_run, session=db, description="location stats")
    return LocationStats(
        avg_median=_round(r.avg_median),
        top_salary=_float(r.top_salary),
        occupation_count=r.occupation_count or 0,
        total_employment=_int(r.total_employment),
        top_occupation=r.top_occupation,
    )


async def get_salaries_by_occupation(db: AsyncSession, metro_id: int) -> List[OccupationSalaryItem]:
    stmt = (
        select(
            Occupation.id.label("occupation_id"),
            Occupation.occ_title,
            Occupation.slug.label("occ_slug"),
            SalaryFact.a_median,
            SalaryFact.a_mean,
            SalaryFact.tot_emp,
        )
        .select_from(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .where(SalaryFact.metro_id == metro_id, SalaryFact.is_indexable.is_(True))
        .order_by(SalaryFact.a_median.desc().nulls_last(), Occupation.occ_title)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="salaries by occupation")
    return [OccupationSalaryItem(**r._mapping) for r in rows]


# ============================================================================
# Salary pages
# ============================================================================

async def get_salary_page(
    db: AsyncSession, occupation_slug: str, metro_slug: str
) -> Optional[Tuple[OccupationInfo, MetroInfo, SalaryFigures]]:
    stmt = (
        select(SalaryFact, Occupation, Metro)
        .select_from(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(Occupation.slug == occupation_slug, Metro.slug == metro_slug)
    )

    async def _run():
        return (await db.execute(stmt)).first()

    row = await retry_read(_run, session=db, description="salary page")
    if row is None:
        return None

    fact, occupation, metro = row
    return (
        OccupationInfo.model_validate(occupation),
        MetroInfo.model_validate(metro),
        SalaryFigures.model_validate(fact),
    )


def _related_stmt(*conditions):
    return (
        select(
            Occupation.occ_title,
            Occupation.slug.label("occ_slug"),
            Metro.area_title,
            Metro.slug.label("metro_slug"),
            SalaryFact.a_median,
            SalaryFact.tot_emp,
        )
        .select_from(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(SalaryFact.is_indexable.is_(True), *conditions)
        .order_by(SalaryFact.a_median.desc().nulls_last(), SalaryFact.id)
        .limit(RELATED_LIMIT)
    )


async def get_related_occupations(db: AsyncSession, metro_id: int, occupation_id: int) -> List[RelatedSalary]:
    """Other occupations in the same metro"""
    stmt = _related_stmt(SalaryFact.metro_id == metro_id, SalaryFact.occupation_id != occupation_id)

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="related occupations")
    return [RelatedSalary(**r._mapping) for r in rows]


async def get_other_locations(db: AsyncSession, occupation_id: int, metro_id: int) -> List[RelatedSalary]:
    """Same occupation in other metros"""
    stmt = _related_stmt(SalaryFact.occupation_id == occupation_id, SalaryFact.metro_id != metro_id)

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="other locations")
    return [RelatedSalary(**r._mapping) for r in rows]


# ============================================================================
# Search
# ============================================================================

async def search_salaries(db: AsyncSession, q: str, location: str) -> List[RelatedSalary]:
    contains_q = f"%{q}%"
    contains_loc = f"%{location}%"
    stmt = (
        select(
            Occupation.occ_title,
            Occupation.slug.label("occ_slug"),
            Metro.area_title,
            Metro.slug.label("metro_slug"),
            SalaryFact.a_median,
            SalaryFact.tot_emp,
        )
        .select_from(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(
            SalaryFact.is_indexable.is_(True),
            or_(Occupation.occ_title.ilike(contains_q), Occupation.slug.ilike(contains_q)),
            or_(Metro.area_title.ilike(contains_loc), Metro.slug.ilike(contains_loc)),
        )
        .order_by(SalaryFact.tot_emp.desc().nulls_last(), SalaryFact.id)
        .limit(SEARCH_SALARY_LIMIT)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="salary search")
    return [RelatedSalary(**r._mapping) for r in rows]


async def search_occupations(db: AsyncSession, q: str) -> List[OccupationSearchHit]:
    """Title/slug matches, prefix matches first"""
    contains = f"%{q}%"
    prefix = f"{q}%"
    avg_salary = (
        select(func.round(func.avg(SalaryFact.a_median)))
        .where(SalaryFact.occupation_id == Occupation.id, SalaryFact.is_indexable.is_(True))
        .correlate(Occupation)
        .scalar_subquery()
    )
    stmt = (
        select(Occupation.occ_title, Occupation.slug, avg_salary.label("avg_salary"))
        .where(
            Occupation.is_indexable.is_(True),
            or_(Occupation.occ_title.ilike(contains), Occupation.slug.ilike(contains)),
        )
        .order_by(
            case((Occupation.occ_title.ilike(prefix), 0), else_=1),
            Occupation.occ_title,
        )
        .limit(SEARCH_ENTITY_LIMIT)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="occupation search")
    return [
        OccupationSearchHit(occ_title=r.occ_title, slug=r.slug, avg_salary=_round(r.avg_salary))
        for r in rows
    ]


async def search_locations(db: AsyncSession, term: str) -> List[LocationSearchHit]:
    """Title/slug/state matches, prefix matches first"""
    contains = f"%{term}%"
    prefix = f"{term}%"
    stmt = (
        select(Metro.area_title, Metro.slug, Metro.state_abbr)
        .where(
            Metro.is_indexable.is_(True),
            or_(
                Metro.area_title.ilike(contains),
                Metro.slug.ilike(contains),
                Metro.state_abbr.ilike(contains),
            ),
        )
        .order_by(case((Metro.area_title.ilike(prefix), 0), else_=1), Metro.area_title)
        .limit(SEARCH_ENTITY_LIMIT)
    )

    async def _run():
        return (await db.execute(stmt)).all()

    rows = await retry_read(_run, session=db, description="location search")
    return [LocationSearchHit(**r._mapping) for r in rows]


# ============================================================================
# Sitemaps
# ============================================================================

async def get_sitemap_counts(db: AsyncSession) -> Tuple[int, int, int]:
    """(indexable occupations, indexable metros, indexable salary facts)"""
    async def _run():
        occupations = await db.scalar(
            select(func.count()).select_from(Occupation).where(Occupation.is_indexable.is_(True))
        )
        metros = await db.scalar(
            select(func.count()).select_from(Metro).where(Metro.is_indexable.is_(True))
        )
        facts = await db.scalar(
            select(func.count()).select_from(SalaryFact).where(SalaryFact.is_indexable.is_(True))
        )
        return occupations or 0, metros or 0, facts or 0

    return await retry_read(_run, session=db, description="sitemap counts")


async def get_indexable_occupation_slugs(db: AsyncSession) -> List[str]:
    async def _run():
        result = await db.execute(
            select(Occupation.slug).where(Occupation.is_indexable.is_(True)).order_by(Occupation.slug)
        )
        return list(result.scalars().all())

    return await retry_read(_run, session=db, description="occupation slugs")


async def get_indexable_metro_slugs(db: AsyncSession) -> List[str]:
    async def _run():
        result = await db.execute(
            select(Metro.slug).where(Metro.is_indexable.is_(True)).order_by(Metro.slug)
        )
        return list(result.scalars().all())

    return await retry_read(_run, session=db, description="metro slugs")


async def get_salary_slug_page(db: AsyncSession, offset: int, limit: int) -> List[Tuple[str, str]]:
    """(occupation slug, metro slug) pairs in sitemap order"""
    if limit <= 0:
        return []

    stmt = (
        select(Occupation.slug, Metro.slug)
        .select_from(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(SalaryFact.is_indexable.is_(True))
        .order_by(SalaryFact.tot_emp.desc().nulls_last(), SalaryFact.id)
        .offset(offset)
        .limit(limit)
    )

    async def _run():
        return [(occ, metro) for occ, metro in (await db.execute(stmt)).all()]

    return await retry_read(_run, session=db, description="salary sitemap page")
