"""
API endpoint tests
"""

import xml.etree.ElementTree as ET
import httpx
import pytest
import pytest_asyncio
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from api.main import app
from api.dependencies import get_db
from ingestion.extractors.spreadsheet_extractor import SpreadsheetExtractor
from ingestion.runner import IngestionRunner
from core.config import settings
from core.exceptions import ResourceNotFoundError

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}
NEW_YORK = "new-york-newark-jersey-city-ny-nj-pa"
AUSTIN = "austin-round-rock-san-marcos-tx"


@pytest_asyncio.fixture
async def client(session_factory):
    """Create test client with database override"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def loaded(session_factory, bls_csv_file):
    """Database populated from the sample BLS extract"""
    return await IngestionRunner(session_factory).run(
        SpreadsheetExtractor(bls_csv_file),
        data_period="May 2024",
        release_date="2025-04-02"
    )


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["sitemap"] == "/sitemap.xml"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_health_endpoint(client, loaded):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["latest_run"]["status"] == "success"
    assert data["data_metadata"]["data_period"] == "May 2024"


@pytest.mark.asyncio
async def test_health_degraded_after_failed_run(client, session_factory, tmp_path):
    with pytest.raises(ResourceNotFoundError):
        await IngestionRunner(session_factory).run(SpreadsheetExtractor(tmp_path / "missing.xlsx"))

    response = await client.get("/health")

    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_metadata_default_before_ingestion(client):
    response = await client.get("/metadata")

    assert response.status_code == 200
    data = response.json()
    assert data["is_default"] is True
    assert data["data_period"] == "May 2024"
    assert data["record_count"] == 141164


@pytest.mark.asyncio
async def test_stats_endpoint(client, loaded):
    response = await client.get("/stats")

    assert response.status_code == 200
    data = response.json()

    assert data["occupation_count"] == 3
    assert data["metro_count"] == 2
    assert data["salary_pages"] == 4
    assert data["top_occupations"][0]["slug"] == "software-developers"
    assert data["top_occupations"][0]["avg_median"] == 156250
    assert {m["slug"] for m in data["top_metros"]} == {NEW_YORK, AUSTIN}
    assert data["data_metadata"]["record_count"] == 5


@pytest.mark.asyncio
async def test_list_occupations_only_indexable(client, loaded):
    response = await client.get("/occupations")

    assert response.status_code == 200
    data = response.json()

    # Farmworkers have no indexable salary page
    assert data["total"] == 2
    assert [o["slug"] for o in data["occupations"]] == ["registered-nurses", "software-developers"]
    assert data["occupations"][1]["metro_count"] == 2


@pytest.mark.asyncio
async def test_occupation_detail(client, loaded):
    response = await client.get("/occupations/software-developers")

    assert response.status_code == 200
    data = response.json()

    assert data["occupation"]["occ_code"] == "15-1252"
    assert data["stats"]["min_median"] == 147500
    assert data["stats"]["max_median"] == 165000
    assert data["stats"]["total_employment"] == 116510
    assert [s["metro_slug"] for s in data["salaries"]] == [NEW_YORK, AUSTIN]


@pytest.mark.asyncio
async def test_occupation_not_found(client, loaded):
    response = await client.get("/occupations/astronaut-chefs")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_locations(client, loaded):
    response = await client.get("/locations")

    assert response.status_code == 200
    data = response.json()

    assert [m["slug"] for m in data["locations"]] == [NEW_YORK, AUSTIN]
    assert data["locations"][0]["occupation_count"] == 2
    assert data["locations"][0]["top_salary"] == 165000


@pytest.mark.asyncio
async def test_location_detail(client, loaded):
    response = await client.get(f"/locations/{AUSTIN}")

    assert response.status_code == 200
    data = response.json()

    assert data["metro"]["state_abbr"] == "TX"
    assert data["stats"]["top_occupation"] == "Software Developers"
    assert [s["occ_slug"] for s in data["salaries"]] == ["software-developers", "registered-nurses"]


@pytest.mark.asyncio
async def test_salary_page(client, loaded):
    response = await client.get(f"/salary/software-developers/{NEW_YORK}")

    assert response.status_code == 200
    data = response.json()

    assert data["salary"]["a_median"] == 165000
    assert data["salary"]["is_indexable"] is True
    assert [r["occ_slug"] for r in data["related_occupations"]] == ["registered-nurses"]
    assert [r["metro_slug"] for r in data["other_locations"]] == [AUSTIN]


@pytest.mark.asyncio
async def test_salary_page_with_suppressed_values(client, loaded):
    response = await client.get(
        f"/salary/farmworkers-and-laborers-crop-nursery-and-greenhouse/{NEW_YORK}"
    )

    assert response.status_code == 200
    salary = response.json()["salary"]
    assert salary["a_median"] is None
    assert salary["tot_emp"] is None
    assert salary["is_indexable"] is False


@pytest.mark.asyncio
async def test_salary_page_not_found(client, loaded):
    response = await client.get("/salary/software-developers/atlantis")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_search_empty_query(client, loaded):
    response = await client.get("/api/search")

    assert response.status_code == 200
    assert response.json() == {"occupations": [], "locations": [], "results": [], "error": None}


@pytest.mark.asyncio
async def test_search_occupations(client, loaded):
    response = await client.get("/api/search", params={"q": "soft"})

    data = response.json()
    assert [o["slug"] for o in data["occupations"]] == ["software-developers"]
    assert data["occupations"][0]["avg_salary"] == 156250
    assert data["results"][0]["href"] == "/occupations/software-developers"


@pytest.mark.asyncio
async def test_search_salary_pages(client, loaded):
    response = await client.get("/api/search", params={"q": "nurse", "location": "austin"})

    data = response.json()
    assert data["results"][0]["type"] == "salary"
    assert data["results"][0]["href"] == f"/salary/registered-nurses/{AUSTIN}"
    assert [loc["slug"] for loc in data["locations"]] == [AUSTIN]


@pytest.mark.asyncio
async def test_search_failure_returns_error(client, loaded):
    with patch(
        "api.queries.search_occupations",
        side_effect=OperationalError("SELECT", {}, Exception("syntax"))
    ):
        response = await client.get("/api/search", params={"q": "soft"})

    assert response.status_code == 500
    assert response.json()["error"] == "Search failed"


@pytest.mark.asyncio
async def test_sitemap_index(client, loaded):
    response = await client.get("/sitemap.xml")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    root = ET.fromstring(response.content)
    locs = [e.text for e in root.findall("sm:sitemap/sm:loc", NS)]
    assert locs == [f"{settings.SITE_URL}/sitemap/0.xml"]


@pytest.mark.asyncio
async def test_sitemap_first_page(client, loaded):
    response = await client.get("/sitemap/0.xml")

    assert response.status_code == 200
    root = ET.fromstring(response.content)
    locs = [e.text for e in root.findall("sm:url/sm:loc", NS)]

    # 3 static + 3 occupations + 2 metros + 4 indexable salary pages
    assert len(locs) == 12
    assert locs[0] == settings.SITE_URL
    # Salary pages ordered by employment
    assert locs[8] == f"{settings.SITE_URL}/salary/registered-nurses/{NEW_YORK}"


@pytest.mark.asyncio
async def test_sitemap_page_out_of_range(client, loaded):
    response = await client.get("/sitemap/1.xml")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_robots_txt(client):
    response = await client.get("/robots.txt")

    assert response.status_code == 200
    assert "User-agent: GPTBot" in response.text
    assert f"Sitemap: {settings.SITE_URL}/sitemap.xml" in response.text
