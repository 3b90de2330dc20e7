"""
Fixed-capacity sitemap partitioning and XML rendering.

Page 0 carries the static pages, every indexable occupation and metro page,
then as many salary pages as still fit. Every later page is salary pages
only, U at a time, over a total order of indexable facts.
"""

import math
import xml.etree.ElementTree as ET
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple
from pydantic import BaseModel
from core.config import settings

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

STATIC_PATHS = ("", "/occupations", "/locations")


class SitemapPage(BaseModel):
    """Slice of the URL space covered by one sitemap document"""
    index: int
    include_fixed: bool
    salary_offset: int
    salary_limit: int


class SitemapUrl(BaseModel):
    loc: str
    changefreq: str
    priority: float
    lastmod: Optional[str] = None


class SitemapPartitioner:
    """
    Deterministic assignment of URLs to sitemap pages.

    fixed = static pages + indexable occupations + indexable metros
    pages = ceil((indexable facts + fixed) / U)
    """

    def __init__(
        self,
        indexable_occupations: int,
        indexable_metros: int,
        indexable_facts: int,
        urls_per_sitemap: Optional[int] = None,
        static_count: int = len(STATIC_PATHS)
    ):
        self.urls_per_sitemap = (
            settings.URLS_PER_SITEMAP if urls_per_sitemap is None else urls_per_sitemap
        )
        if self.urls_per_sitemap <= 0:
            raise ValueError("urls_per_sitemap must be positive")
        if min(indexable_occupations, indexable_metros, indexable_facts, static_count) < 0:
            raise ValueError("URL counts must be non-negative")

        self.static_count = static_count
        self.indexable_occupations = indexable_occupations
        self.indexable_metros = indexable_metros
        self.indexable_facts = indexable_facts

        if self.fixed_count > self.urls_per_sitemap:
            raise ValueError(
                f"{self.fixed_count} fixed URLs do not fit in one sitemap of "
                f"{self.urls_per_sitemap}"
            )

    @property
    def fixed_count(self) -> int:
        return self.static_count + self.indexable_occupations + self.indexable_metros

    @property
    def total_urls(self) -> int:
        return self.indexable_facts + self.fixed_count

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total_urls / self.urls_per_sitemap))

    @property
    def first_page_salary_quota(self) -> int:
        return self.urls_per_sitemap - self.fixed_count

    def page(self, index: int) -> SitemapPage:
        """
        Salary slice for page `index`.

        Raises:
            ValueError: index outside [0, page_count)
        """
        if index < 0 or index >= self.page_count:
            raise ValueError(f"Sitemap page {index} out of range [0, {self.page_count})")

        if index == 0:
            offset = 0
            quota = self.first_page_salary_quota
        else:
            offset = self.first_page_salary_quota + (index - 1) * self.urls_per_sitemap
            quota = self.urls_per_sitemap

        remaining = max(0, self.indexable_facts - offset)
        return SitemapPage(
            index=index,
            include_fixed=index == 0,
            salary_offset=offset,
            salary_limit=min(quota, remaining),
        )

    def pages(self) -> List[SitemapPage]:
        return [self.page(i) for i in range(self.page_count)]


# ============================================================================
# URL building
# ============================================================================

def _url(site_url: str, path: str) -> str:
    return f"{site_url.rstrip('/')}{path}"


def static_urls(site_url: str, lastmod: Optional[str] = None) -> List[SitemapUrl]:
    home, occupations, locations = STATIC_PATHS
    return [
        SitemapUrl(loc=_url(site_url, home), changefreq="weekly", priority=1.0, lastmod=lastmod),
        SitemapUrl(loc=_url(site_url, occupations), changefreq="monthly", priority=0.9, lastmod=lastmod),
        SitemapUrl(loc=_url(site_url, locations), changefreq="monthly", priority=0.9, lastmod=lastmod),
    ]


def build_page_urls(
    page: SitemapPage,
    site_url: str,
    occupation_slugs: Sequence[str],
    metro_slugs: Sequence[str],
    salary_slugs: Iterable[Tuple[str, str]],
    lastmod: Optional[str] = None
) -> List[SitemapUrl]:
    """URLs of one sitemap page, fixed pages first on page 0"""
    urls: List[SitemapUrl] = []

    if page.include_fixed:
        urls.extend(static_urls(site_url, lastmod))
        urls.extend(
            SitemapUrl(loc=_url(site_url, f"/occupations/{slug}"), changefreq="monthly", priority=0.8, lastmod=lastmod)
            for slug in occupation_slugs
        )
        urls.extend(
            SitemapUrl(loc=_url(site_url, f"/locations/{slug}"), changefreq="monthly", priority=0.8, lastmod=lastmod)
            for slug in metro_slugs
        )

    urls.extend(
        SitemapUrl(
            loc=_url(site_url, f"/salary/{occ_slug}/{metro_slug}"),
            changefreq="yearly",
            priority=0.7,
            lastmod=lastmod,
        )
        for occ_slug, metro_slug in salary_slugs
    )
    return urls


# ============================================================================
# XML rendering
# ============================================================================

def _serialize(root: ET.Element) -> bytes:
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ", level=0)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_sitemap_index(page_count: int, site_url: str, lastmod: Optional[str] = None) -> bytes:
    """<sitemapindex> referencing /sitemap/{i}.xml for every page"""
    lastmod = lastmod or date.today().isoformat()
    root = ET.Element("sitemapindex", xmlns=SITEMAP_NS)

    for i in range(page_count):
        sitemap = ET.SubElement(root, "sitemap")
        ET.SubElement(sitemap, "loc").text = _url(site_url, f"/sitemap/{i}.xml")
        ET.SubElement(sitemap, "lastmod").text = lastmod

    return _serialize(root)


def render_urlset(urls: Iterable[SitemapUrl]) -> bytes:
    """<urlset> document for one sitemap page"""
    root = ET.Element("urlset", xmlns=SITEMAP_NS)

    for entry in urls:
        url = ET.SubElement(root, "url")
        ET.SubElement(url, "loc").text = entry.loc
        if entry.lastmod:
            ET.SubElement(url, "lastmod").text = entry.lastmod
        ET.SubElement(url, "changefreq").text = entry.changefreq
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"

    return _serialize(root)
