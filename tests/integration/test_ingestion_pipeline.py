"""
Integration tests for the full ingestion pipeline against a real database
"""

import pytest
from sqlalchemy import func, inspect, select
from ingestion.extractors.spreadsheet_extractor import SpreadsheetExtractor
from ingestion.runner import IngestionRunner
from ingestion.metadata_store import get_data_metadata
from models.occupation import Occupation
from models.metro import Metro
from models.salary import SalaryFact
from models.metadata import DataMetadata
from models.ingestion_run import IngestionRun
from models.base import IngestionStatus
from conftest import bls_row, write_bls_csv


async def _count(session, model):
    return await session.scalar(select(func.count()).select_from(model))


async def _fact(session, occ_code, area_code):
    result = await session.execute(
        select(SalaryFact)
        .join(Occupation, SalaryFact.occupation_id == Occupation.id)
        .join(Metro, SalaryFact.metro_id == Metro.id)
        .where(Occupation.occ_code == occ_code, Metro.area_code == area_code)
    )
    return result.scalar_one()


async def _snapshot(session_factory):
    """Every column of the three data tables except updated_at, keyed by table"""
    snapshot = {}
    async with session_factory() as session:
        for model in (Occupation, Metro, SalaryFact):
            columns = [attr.key for attr in inspect(model).column_attrs if attr.key != "updated_at"]
            rows = (await session.execute(select(model).order_by(model.id))).scalars().all()
            snapshot[model.__tablename__] = [
                {column: getattr(row, column) for column in columns} for row in rows
            ]
    return snapshot


@pytest.mark.asyncio
async def test_full_ingestion(session_factory, bls_csv_file):
    """Detailed rows become occupations, metros and salary facts"""
    runner = IngestionRunner(session_factory)

    result = await runner.run(
        SpreadsheetExtractor(bls_csv_file),
        data_period="May 2024",
        release_date="2025-04-02",
        data_year=2024
    )

    assert result["status"] == "success"
    assert result["rows_read"] == 7
    assert result["rows_admitted"] == 5
    assert result["rows_rejected"] == 0
    assert result["facts_loaded"] == 5
    assert result["summary"] == {
        "occupations": 3,
        "metros": 2,
        "salary_records": 5,
        "indexable_pages": 4,
    }

    async with session_factory() as session:
        software = (await session.execute(
            select(Occupation).where(Occupation.occ_code == "15-1252")
        )).scalar_one()
        assert software.slug == "software-developers"

        new_york = (await session.execute(
            select(Metro).where(Metro.area_code == "35620")
        )).scalar_one()
        assert new_york.slug == "new-york-newark-jersey-city-ny-nj-pa"
        assert new_york.state_abbr == "NY"

        fact = await _fact(session, "15-1252", "35620")
        assert fact.tot_emp == 85310
        assert fact.a_median == 165000.0
        assert fact.dqs == 1.0
        assert fact.is_indexable is True
        assert fact.data_year == 2024

        metadata = await get_data_metadata(session)
        assert metadata.is_default is False
        assert metadata.data_period == "May 2024"
        assert metadata.record_count == 5
        assert str(metadata.bls_release_date) == "2025-04-02"

        run = (await session.execute(select(IngestionRun))).scalar_one()
        assert run.status == IngestionStatus.SUCCESS
        assert run.rows_read == 7
        assert run.facts_loaded == 5
        assert run.completed_at is not None


@pytest.mark.asyncio
async def test_suppressed_values_stored_as_null(session_factory, bls_csv_file):
    """Missing BLS values are NULL in the database, never zero"""
    await IngestionRunner(session_factory).run(SpreadsheetExtractor(bls_csv_file))

    async with session_factory() as session:
        farmworkers = await _fact(session, "45-2092", "35620")
        assert farmworkers.tot_emp is None
        assert farmworkers.a_median is None
        assert farmworkers.a_pct10 is None
        assert farmworkers.dqs == 0.0
        assert farmworkers.is_indexable is False

        nurses = await _fact(session, "29-1141", "12420")
        assert nurses.a_pct75 is None
        assert nurses.dqs == 0.85
        assert nurses.is_indexable is True


@pytest.mark.asyncio
async def test_ingestion_is_idempotent(session_factory, bls_csv_file):
    """Re-running the same file leaves every stored row unchanged except updated_at"""
    await IngestionRunner(session_factory).run(SpreadsheetExtractor(bls_csv_file))
    first = await _snapshot(session_factory)

    await IngestionRunner(session_factory).run(SpreadsheetExtractor(bls_csv_file))
    second = await _snapshot(session_factory)

    assert len(first["occupations"]) == 3
    assert len(first["metros"]) == 2
    assert len(first["salary_data"]) == 5
    assert second == first

    async with session_factory() as session:
        assert await _count(session, DataMetadata) == 1
        assert await _count(session, IngestionRun) == 2


@pytest.mark.asyncio
async def test_reingestion_updates_values_and_preserves_slug(session_factory, tmp_path):
    """New titles and wages overwrite, published slugs stay stable"""
    first = write_bls_csv(tmp_path / "first.csv", [
        bls_row("15-1252", "Software Developers", "35620", "New York-Newark-Jersey City, NY-NJ-PA",
                a_median="150,000"),
    ])
    second = write_bls_csv(tmp_path / "second.csv", [
        bls_row("15-1252", "Software Developers and Programmers", "35620",
                "New York-Newark-Jersey City, NY-NJ-PA", a_median="160,000"),
    ])

    await IngestionRunner(session_factory).run(SpreadsheetExtractor(first))
    await IngestionRunner(session_factory).run(SpreadsheetExtractor(second), data_period="May 2025")

    async with session_factory() as session:
        occupation = (await session.execute(select(Occupation))).scalar_one()
        assert occupation.occ_title == "Software Developers and Programmers"
        assert occupation.slug == "software-developers"

        fact = await _fact(session, "15-1252", "35620")
        assert fact.a_median == 160000.0

        metadata = await get_data_metadata(session)
        assert metadata.data_period == "May 2025"


@pytest.mark.asyncio
async def test_repeated_pair_last_row_wins(session_factory, tmp_path):
    path = write_bls_csv(tmp_path / "dupes.csv", [
        bls_row("15-1252", "Software Developers", "35620", "New York, NY", a_median="100,000"),
        bls_row("15-1252", "Software Developers", "35620", "New York, NY", a_median="120,000"),
    ])

    result = await IngestionRunner(session_factory).run(SpreadsheetExtractor(path))

    assert result["facts_loaded"] == 1
    async with session_factory() as session:
        assert (await _fact(session, "15-1252", "35620")).a_median == 120000.0


@pytest.mark.asyncio
async def test_dry_run_limits_rows_and_keeps_metadata(session_factory, bls_csv_file):
    """Dry runs load a sample and leave data_metadata untouched"""
    result = await IngestionRunner(session_factory).run(
        SpreadsheetExtractor(bls_csv_file, limit=2),
        dry_run=True
    )

    assert result["dry_run"] is True
    assert result["rows_admitted"] == 2
    assert result["summary"]["salary_records"] == 2

    async with session_factory() as session:
        assert await _count(session, DataMetadata) == 0
        metadata = await get_data_metadata(session)
        assert metadata.is_default is True

        run = (await session.execute(select(IngestionRun))).scalar_one()
        assert run.dry_run is True


@pytest.mark.asyncio
async def test_rows_without_codes_or_titles_are_rejected(session_factory, tmp_path):
    path = write_bls_csv(tmp_path / "partial.csv", [
        bls_row("15-1252", "Software Developers", "35620", "New York, NY"),
        bls_row("", "Unknown", "35620", "New York, NY"),
        bls_row("29-1141", "", "35620", "New York, NY"),
    ])

    result = await IngestionRunner(session_factory).run(SpreadsheetExtractor(path))

    assert result["rows_admitted"] == 1
    assert result["rows_rejected"] == 2

    async with session_factory() as session:
        run = (await session.execute(select(IngestionRun))).scalar_one()
        assert run.rows_rejected == 2
        # Only the validation failure carries details, missing codes are routine
        assert len(run.error_details["row_errors"]) == 1
        assert run.error_details["row_errors"][0]["context"]["occ_code"] == "29-1141"
