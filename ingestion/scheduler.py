import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from core.exceptions import ETLException
from ingestion.extractors.bls_release_checker import BLSReleaseChecker
from schemas.api import ReleaseCheckResult

logger = logging.getLogger(__name__)


class FreshnessScheduler:
    """Periodically checks the BLS site for a newer OEWS release"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        checker: Optional[BLSReleaseChecker] = None,
        interval_hours: Optional[int] = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.session_factory = session_factory
        self.checker = checker or BLSReleaseChecker()
        self.interval_hours = interval_hours or settings.FRESHNESS_CHECK_INTERVAL_HOURS
        self.last_result: Optional[ReleaseCheckResult] = None

    async def run_check_job(self):
        """Job to run the release check"""
        logger.info("Scheduler: Starting BLS freshness check")
        try:
            self.last_result = await self.checker.check(self.session_factory)
            if self.last_result.has_update:
                logger.warning(
                    f"Scheduler: {self.last_result.latest_period} data is available "
                    f"(loaded: {self.last_result.current_period}), run the ingestion script"
                )
        except ETLException as e:
            logger.error(f"Scheduler: freshness check failed - {e}")
        except Exception:
            logger.exception("Scheduler: freshness check failed unexpectedly")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_check_job,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id="bls_freshness_check",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Freshness scheduler started (every {self.interval_hours}h)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Freshness scheduler stopped")
