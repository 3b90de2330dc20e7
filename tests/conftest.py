"""
Pytest configuration and fixtures
"""

import csv
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from models.base import Base
from typing import AsyncGenerator, Dict, List

BLS_HEADER = [
    "AREA", "AREA_TITLE", "AREA_TYPE", "PRIM_STATE", "NAICS", "OCC_CODE", "OCC_TITLE",
    "O_GROUP", "TOT_EMP", "H_MEAN", "A_MEAN", "A_PCT10", "A_PCT25", "A_MEDIAN",
    "A_PCT75", "A_PCT90",
]


def bls_row(
    occ_code: str,
    occ_title: str,
    area: str,
    area_title: str,
    group: str = "detailed",
    tot_emp: str = "1,200",
    a_mean: str = "98000",
    a_median: str = "95000",
    percentiles=("60000", "75000", "120000", "150000"),
    h_mean: str = "47.12",
) -> Dict[str, str]:
    """One raw row with the official uppercase BLS headers"""
    pct10, pct25, pct75, pct90 = percentiles
    return {
        "AREA": area,
        "AREA_TITLE": area_title,
        "AREA_TYPE": "4",
        "PRIM_STATE": area_title[-2:],
        "NAICS": "000000",
        "OCC_CODE": occ_code,
        "OCC_TITLE": occ_title,
        "O_GROUP": group,
        "TOT_EMP": tot_emp,
        "H_MEAN": h_mean,
        "A_MEAN": a_mean,
        "A_PCT10": pct10,
        "A_PCT25": pct25,
        "A_MEDIAN": a_median,
        "A_PCT75": pct75,
        "A_PCT90": pct90,
    }


def write_bls_csv(path, rows: List[Dict[str, str]]):
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=BLS_HEADER)
        writer.writeheader()
        writer.writerows(rows)
    return path


@pytest.fixture
def bls_rows() -> List[Dict[str, str]]:
    """Small metro-area extract: 3 detailed occupations x 2 metros plus aggregates"""
    return [
        bls_row("00-0000", "All Occupations", "35620", "New York-Newark-Jersey City, NY-NJ-PA", group="total"),
        bls_row("15-0000", "Computer and Mathematical Occupations", "35620",
                "New York-Newark-Jersey City, NY-NJ-PA", group="major"),
        bls_row("15-1252", "Software Developers", "35620", "New York-Newark-Jersey City, NY-NJ-PA",
                tot_emp="85,310", a_mean="171,640", a_median="165,000"),
        bls_row("29-1141", "Registered Nurses", "35620", "New York-Newark-Jersey City, NY-NJ-PA",
                tot_emp="187,900", a_mean="120,310", a_median="118,000"),
        bls_row("45-2092", "Farmworkers and Laborers, Crop, Nursery, and Greenhouse", "35620",
                "New York-Newark-Jersey City, NY-NJ-PA",
                tot_emp="**", a_mean="*", a_median="*", percentiles=("*", "*", "*", "*"), h_mean="*"),
        bls_row("15-1252", "Software Developers", "12420", "Austin-Round Rock-San Marcos, TX",
                tot_emp="31,200", a_mean="152,300", a_median="147,500"),
        bls_row("29-1141", "Registered Nurses", "12420", "Austin-Round Rock-San Marcos, TX",
                tot_emp="15,040", a_mean="92,100", a_median="89,900",
                percentiles=("68,000", "78,000", "#", "112,000")),
    ]


@pytest.fixture
def bls_csv_file(tmp_path, bls_rows):
    """The bls_rows fixture written as a CSV export"""
    return write_bls_csv(tmp_path / "MSA_M2024_dl.csv", bls_rows)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine on a throwaway SQLite file"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'salary_test.db'}",
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()
