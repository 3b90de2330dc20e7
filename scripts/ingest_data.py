"""
Load a BLS OEWS metro-area spreadsheet into the salary database.

Usage:
    python scripts/ingest_data.py
    python scripts/ingest_data.py --file data/oesm25ma/MSA_M2025_dl.xlsx \\
        --data-period "May 2025" --release-date 2026-04-01 --data-year 2025
    python scripts/ingest_data.py --dry-run    # first 100 detailed rows only
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine_from_settings, create_session_factory
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.extractors.spreadsheet_extractor import SpreadsheetExtractor
from ingestion.runner import IngestionRunner

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest BLS OEWS salary data")
    parser.add_argument("--file", default=settings.DATA_FILE, help="Path to the .xlsx or .csv file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help=f"Only process the first {settings.DRY_RUN_LIMIT} detailed rows"
    )
    parser.add_argument("--data-period", default=settings.DATA_PERIOD, help='e.g. "May 2024"')
    parser.add_argument("--release-date", default=settings.BLS_RELEASE_DATE, help="BLS release date (YYYY-MM-DD)")
    parser.add_argument("--source-url", default=settings.BLS_SOURCE_URL, help="Where the file was downloaded from")
    parser.add_argument("--data-year", type=int, default=settings.DATA_YEAR, help="Reference year stored on salary rows")
    return parser.parse_args(argv)


async def run_ingestion(args: argparse.Namespace) -> int:
    """Run one ingestion; returns the process exit code"""
    logger.info("Starting data ingestion...")
    logger.info(f"Mode: {'DRY RUN (' + str(settings.DRY_RUN_LIMIT) + ' rows)' if args.dry_run else 'FULL IMPORT'}")

    engine = create_engine_from_settings()
    session_factory = create_session_factory(engine)

    try:
        extractor = SpreadsheetExtractor(
            file_path=args.file,
            limit=settings.DRY_RUN_LIMIT if args.dry_run else None
        )
        runner = IngestionRunner(session_factory)

        result = await runner.run(
            extractor,
            data_period=args.data_period,
            release_date=args.release_date,
            source_url=args.source_url,
            data_year=args.data_year,
            dry_run=args.dry_run
        )

        summary = result["summary"]
        logger.info(
            f"Rows read={result['rows_read']}, admitted={result['rows_admitted']}, "
            f"rejected={result['rows_rejected']}, skipped facts={result['facts_skipped']}"
        )
        logger.info(
            f"Database summary: occupations={summary['occupations']}, "
            f"metros={summary['metros']}, salary records={summary['salary_records']}, "
            f"indexable pages={summary['indexable_pages']}"
        )
        logger.info("Data ingestion complete!")
        return 0

    except ETLException as e:
        logger.error(f"Error during ingestion: {e}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_ingestion(parse_args())))
