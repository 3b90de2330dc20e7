"""
Unit tests for sitemap partitioning, XML rendering and robots.txt
"""

import xml.etree.ElementTree as ET
import pytest
from seo.sitemap import (
    SITEMAP_NS,
    SitemapPartitioner,
    build_page_urls,
    render_sitemap_index,
    render_urlset,
    static_urls,
)
from seo.robots import render_robots_txt

NS = {"sm": SITEMAP_NS}


class TestSitemapPartitioner:
    """Fixed-capacity URL partitioning"""

    def test_small_site_fits_one_page(self):
        partitioner = SitemapPartitioner(2, 2, 3, urls_per_sitemap=100)

        assert partitioner.fixed_count == 7
        assert partitioner.total_urls == 10
        assert partitioner.page_count == 1

        page = partitioner.page(0)
        assert page.include_fixed is True
        assert page.salary_offset == 0
        assert page.salary_limit == 3

    def test_empty_site_still_has_one_page(self):
        partitioner = SitemapPartitioner(0, 0, 0, urls_per_sitemap=10)

        assert partitioner.page_count == 1
        assert partitioner.page(0).salary_limit == 0

    def test_pages_cover_every_fact_exactly_once(self):
        partitioner = SitemapPartitioner(10, 5, 95, urls_per_sitemap=20)
        # fixed = 3 + 10 + 5 = 18, total = 113
        assert partitioner.page_count == 6

        pages = partitioner.pages()
        assert pages[0].salary_limit == 2
        assert pages[1].salary_offset == 2
        assert pages[1].salary_limit == 20
        assert pages[5].salary_offset == 82
        assert pages[5].salary_limit == 13

        covered = []
        for page in pages:
            covered.extend(range(page.salary_offset, page.salary_offset + page.salary_limit))
        assert covered == list(range(95))

        for page in pages:
            fixed = partitioner.fixed_count if page.include_fixed else 0
            assert page.salary_limit + fixed <= 20

    def test_exact_fit(self):
        partitioner = SitemapPartitioner(1, 1, 15, urls_per_sitemap=10)
        # fixed 5, total 20 -> exactly 2 full pages
        assert partitioner.page_count == 2
        assert partitioner.page(1).salary_limit == 10

    def test_page_out_of_range(self):
        partitioner = SitemapPartitioner(1, 1, 1, urls_per_sitemap=10)

        with pytest.raises(ValueError):
            partitioner.page(1)
        with pytest.raises(ValueError):
            partitioner.page(-1)

    def test_fixed_urls_exceeding_capacity(self):
        with pytest.raises(ValueError):
            SitemapPartitioner(10, 10, 0, urls_per_sitemap=20)

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            SitemapPartitioner(0, 0, 0, urls_per_sitemap=0)

    def test_fixed_urls_filling_first_page(self):
        partitioner = SitemapPartitioner(10, 7, 5, urls_per_sitemap=20)

        assert partitioner.page(0).salary_limit == 0
        assert partitioner.page(1).salary_offset == 0
        assert partitioner.page(1).salary_limit == 5


class TestSitemapRendering:
    """Sitemap XML documents"""

    def test_static_urls(self):
        urls = static_urls("https://example.com/")

        assert [u.loc for u in urls] == [
            "https://example.com",
            "https://example.com/occupations",
            "https://example.com/locations",
        ]
        assert urls[0].priority == 1.0

    def test_first_page_orders_fixed_urls_first(self):
        partitioner = SitemapPartitioner(1, 1, 2, urls_per_sitemap=100)

        urls = build_page_urls(
            partitioner.page(0),
            "https://example.com",
            occupation_slugs=["software-developers"],
            metro_slugs=["austin-tx"],
            salary_slugs=[("software-developers", "austin-tx"), ("registered-nurses", "austin-tx")],
            lastmod="2025-04-10"
        )

        locs = [u.loc for u in urls]
        assert locs[3] == "https://example.com/occupations/software-developers"
        assert locs[4] == "https://example.com/locations/austin-tx"
        assert locs[5] == "https://example.com/salary/software-developers/austin-tx"
        assert len(urls) == 7
        assert urls[-1].changefreq == "yearly"

    def test_later_pages_only_salary_urls(self):
        partitioner = SitemapPartitioner(1, 1, 30, urls_per_sitemap=10)

        urls = build_page_urls(
            partitioner.page(1),
            "https://example.com",
            occupation_slugs=["ignored"],
            metro_slugs=["ignored"],
            salary_slugs=[("a", "b")]
        )

        assert [u.loc for u in urls] == ["https://example.com/salary/a/b"]

    def test_render_sitemap_index(self):
        body = render_sitemap_index(3, "https://example.com", lastmod="2025-04-10")

        assert body.startswith(b"<?xml")
        root = ET.fromstring(body)
        locs = [e.text for e in root.findall("sm:sitemap/sm:loc", NS)]
        assert locs == [
            "https://example.com/sitemap/0.xml",
            "https://example.com/sitemap/1.xml",
            "https://example.com/sitemap/2.xml",
        ]

    def test_render_urlset(self):
        urls = static_urls("https://example.com", lastmod="2025-04-10")

        root = ET.fromstring(render_urlset(urls))

        entries = root.findall("sm:url", NS)
        assert len(entries) == 3
        assert entries[0].find("sm:priority", NS).text == "1.0"
        assert entries[1].find("sm:changefreq", NS).text == "monthly"
        assert entries[2].find("sm:lastmod", NS).text == "2025-04-10"


class TestRobots:
    """robots.txt"""

    def test_render_robots_txt(self):
        body = render_robots_txt("https://example.com/")
        lines = body.splitlines()

        assert lines[:2] == ["User-agent: *", "Allow: /"]
        assert "Disallow: /api/" in lines
        assert "User-agent: GPTBot" in lines
        assert lines[lines.index("User-agent: CCBot") + 1] == "Disallow: /"
        assert lines[-1] == "Sitemap: https://example.com/sitemap.xml"
