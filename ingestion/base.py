"""
Abstract base class for row sources and ingestion run tracking
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from models.ingestion_run import IngestionRun
from models.base import IngestionStatus
import logging
import uuid

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """
    Abstract base class for all row sources.

    Responsibilities:
    - Produce raw rows (column name -> cell value)
    - Expose read counters for the run audit trail
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self.rows_read = 0

    @abstractmethod
    async def fetch_data(self) -> List[Dict[str, Any]]:
        """
        Fetch rows from the source.

        Returns:
            List of raw row dictionaries
        """
        pass

    @property
    def location(self) -> Optional[str]:
        """Human-readable origin of the rows (file path, URL)"""
        return None


class RunTracker:
    """
    Records IngestionRun rows.

    Each write happens in its own short session and transaction, separate
    from the ingestion transaction, so failed runs remain visible after a
    rollback.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.run: Optional[IngestionRun] = None

    async def start_run(
        self,
        source_name: str,
        file_path: Optional[str] = None,
        data_period: Optional[str] = None,
        dry_run: bool = False
    ) -> IngestionRun:
        """Create the run record in RUNNING state"""
        run = IngestionRun(
            run_id=uuid.uuid4(),
            source_name=source_name,
            file_path=file_path,
            data_period=data_period,
            status=IngestionStatus.RUNNING,
            dry_run=dry_run,
            started_at=datetime.utcnow()
        )

        async with self.session_factory() as session:
            session.add(run)
            await session.commit()
            await session.refresh(run)

        self.run = run
        logger.info(f"Ingestion run {run.run_id} started for {source_name}")
        return run

    async def complete_run(
        self,
        status: IngestionStatus,
        stats: Optional[Dict[str, int]] = None,
        error_message: Optional[str] = None,
        error_details: Optional[Dict[str, Any]] = None
    ):
        """Complete the run with statistics"""
        if self.run is None:
            return

        async with self.session_factory() as session:
            run = await session.get(IngestionRun, self.run.id)
            if run is None:
                logger.warning(f"Ingestion run {self.run.run_id} vanished before completion")
                return

            run.status = status
            run.completed_at = datetime.utcnow()
            run.duration_seconds = (run.completed_at - run.started_at).total_seconds()

            for field, value in (stats or {}).items():
                if hasattr(run, field):
                    setattr(run, field, value)

            run.error_message = error_message
            run.error_details = error_details

            await session.commit()
            await session.refresh(run)
            self.run = run


async def get_latest_run(session: AsyncSession) -> Optional[IngestionRun]:
    """Most recently started ingestion run, if any"""
    result = await session.execute(
        select(IngestionRun).order_by(IngestionRun.started_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()
