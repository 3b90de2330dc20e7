"""
Release check against a real metadata row
"""

import httpx
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, patch
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from ingestion.extractors.bls_release_checker import BLSReleaseChecker
from ingestion.loaders.salary_loader import SalaryDataLoader
from ingestion.metadata_store import get_data_metadata
from models.metadata import DataMetadata
from core.exceptions import NetworkError

LONG_AGO = datetime(2020, 1, 1)

PAGE_2025 = '<h2>May 2025 estimates</h2><a href="/oes/special.requests/oesm25ma.zip">zip</a> May 2024'


def _checker(handler):
    return BLSReleaseChecker(
        url="https://bls.test/oes/tables.htm",
        max_retries=1,
        retry_delay=0,
        transport=httpx.MockTransport(handler)
    )


async def _seed_metadata(session_factory, data_period):
    async with session_factory() as session:
        async with session.begin():
            await SalaryDataLoader(session).upsert_metadata(data_period=data_period, record_count=5)
            await session.execute(update(DataMetadata).values(last_checked_at=LONG_AGO))
        return await get_data_metadata(session)


@pytest.mark.asyncio
async def test_newer_release_detected(session_factory):
    await _seed_metadata(session_factory, "May 2024")

    result = await _checker(lambda request: httpx.Response(200, text=PAGE_2025)).check(session_factory)

    assert result.has_update is True
    assert result.current_period == "May 2024"
    assert result.latest_period == "May 2025"
    assert result.download_url == "https://www.bls.gov/oes/special.requests/oesm25ma.zip"


@pytest.mark.asyncio
async def test_up_to_date(session_factory):
    await _seed_metadata(session_factory, "May 2025")

    result = await _checker(lambda request: httpx.Response(200, text=PAGE_2025)).check(session_factory)

    assert result.has_update is False


@pytest.mark.asyncio
async def test_default_snapshot_used_before_first_ingestion(session_factory):
    result = await _checker(lambda request: httpx.Response(200, text=PAGE_2025)).check(session_factory)

    assert result.current_period == "May 2024"
    assert result.has_update is True


@pytest.mark.asyncio
async def test_last_checked_touched_even_on_failure(session_factory):
    before = await _seed_metadata(session_factory, "May 2024")

    with pytest.raises(NetworkError):
        await _checker(lambda request: httpx.Response(502)).check(session_factory)

    async with session_factory() as session:
        after = await get_data_metadata(session)

    assert before.last_checked_at == LONG_AGO
    assert after.last_checked_at > LONG_AGO
    assert after.last_ingested_at == before.last_ingested_at
    assert after.last_checked_at <= datetime.utcnow()


@pytest.mark.asyncio
async def test_fetch_error_survives_failed_touch(session_factory):
    await _seed_metadata(session_factory, "May 2024")
    touch = AsyncMock(side_effect=OperationalError("UPDATE data_metadata", {}, Exception("database is locked")))

    with patch("ingestion.extractors.bls_release_checker.update_last_checked", touch):
        with pytest.raises(NetworkError):
            await _checker(lambda request: httpx.Response(502)).check(session_factory)

    assert touch.await_count == 1


@pytest.mark.asyncio
async def test_failed_touch_does_not_hide_release(session_factory):
    await _seed_metadata(session_factory, "May 2024")
    touch = AsyncMock(side_effect=OperationalError("UPDATE data_metadata", {}, Exception("database is locked")))

    with patch("ingestion.extractors.bls_release_checker.update_last_checked", touch):
        result = await _checker(lambda request: httpx.Response(200, text=PAGE_2025)).check(session_factory)

    assert result.latest_period == "May 2025"
