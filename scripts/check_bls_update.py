"""
BLS data update checker.

Checks the BLS OEWS tables page for a newer release than the one in
data_metadata.

Exit codes:
    0 - Data is up to date
    1 - New data available
    2 - Error occurred

When $GITHUB_OUTPUT is set, has_update / latest_period / download_url are
appended to it for workflow steps.
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from typing import Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from core.database import create_engine_from_settings, create_session_factory
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.extractors.bls_release_checker import BLSReleaseChecker
from schemas.api import ReleaseCheckResult

logger = logging.getLogger(__name__)

EXIT_UP_TO_DATE = 0
EXIT_UPDATE_AVAILABLE = 1
EXIT_ERROR = 2


def write_github_output(outputs: Dict[str, str], path: Optional[str] = None):
    path = path or os.environ.get("GITHUB_OUTPUT")
    if not path:
        return
    with open(path, "a", encoding="utf-8") as fh:
        for key, value in outputs.items():
            fh.write(f"{key}={value}\n")


def report(result: ReleaseCheckResult) -> int:
    logger.info(f"Current data period: {result.current_period}")
    logger.info(f"Latest BLS period:   {result.latest_period}")

    if result.has_update:
        logger.info("NEW DATA AVAILABLE")
        logger.info(f"Download URL: {result.download_url}")
        logger.info("Run the ingestion script to update: python scripts/ingest_data.py")
        write_github_output({
            "has_update": "true",
            "latest_period": result.latest_period or "",
            "download_url": result.download_url or "",
        })
        return EXIT_UPDATE_AVAILABLE

    logger.info("Data is up to date. No update needed.")
    write_github_output({"has_update": "false"})
    return EXIT_UP_TO_DATE


async def check_for_update() -> int:
    logger.info("Checking BLS for OEWS data updates...")

    engine = create_engine_from_settings()
    session_factory = create_session_factory(engine)

    try:
        result = await BLSReleaseChecker().check(session_factory)
    except (ETLException, SQLAlchemyError) as e:
        logger.error(f"Error: {e}")
        return EXIT_ERROR
    finally:
        await engine.dispose()

    return report(result)


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(check_for_update()))
