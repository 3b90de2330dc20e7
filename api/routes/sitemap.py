"""
Sitemap index, paginated sitemaps and robots.txt
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from api import queries
from seo.sitemap import SitemapPartitioner, build_page_urls, render_sitemap_index, render_urlset
from seo.robots import render_robots_txt
from core.config import settings
from datetime import date
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["SEO"])

XML_MEDIA_TYPE = "application/xml"
CACHE_HEADERS = {"Cache-Control": "public, max-age=3600"}


async def _partitioner(db: AsyncSession) -> SitemapPartitioner:
    occupations, metros, facts = await queries.get_sitemap_counts(db)
    return SitemapPartitioner(
        indexable_occupations=occupations,
        indexable_metros=metros,
        indexable_facts=facts,
        urls_per_sitemap=settings.URLS_PER_SITEMAP
    )


@router.get("/sitemap.xml")
async def sitemap_index(db: AsyncSession = Depends(get_db)):
    """Sitemap index referencing every sitemap page"""
    partitioner = await _partitioner(db)
    logger.info(
        f"Sitemap index: {partitioner.page_count} pages for {partitioner.total_urls} URLs"
    )
    body = render_sitemap_index(partitioner.page_count, settings.SITE_URL)
    return Response(content=body, media_type=XML_MEDIA_TYPE, headers=CACHE_HEADERS)


@router.get("/sitemap/{sitemap_id}.xml")
async def sitemap_page(sitemap_id: int, db: AsyncSession = Depends(get_db)):
    """One sitemap page; page 0 also lists static, occupation and location pages"""
    partitioner = await _partitioner(db)

    try:
        page = partitioner.page(sitemap_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Sitemap {sitemap_id} does not exist")

    occupation_slugs = []
    metro_slugs = []
    if page.include_fixed:
        occupation_slugs = await queries.get_indexable_occupation_slugs(db)
        metro_slugs = await queries.get_indexable_metro_slugs(db)

    salary_slugs = await queries.get_salary_slug_page(db, page.salary_offset, page.salary_limit)

    urls = build_page_urls(
        page,
        settings.SITE_URL,
        occupation_slugs=occupation_slugs,
        metro_slugs=metro_slugs,
        salary_slugs=salary_slugs,
        lastmod=date.today().isoformat()
    )
    return Response(content=render_urlset(urls), media_type=XML_MEDIA_TYPE, headers=CACHE_HEADERS)


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt():
    return render_robots_txt(settings.SITE_URL)
