# ============================================================================
# File: ingestion/runner.py
# Description: Ingestion orchestrator with run tracking and a single load transaction
# ============================================================================
"""
Ingestion Runner - Orchestrates Extract, Transform, Load for a BLS file.

This module provides:
- Row-level rejection accounting (rows without codes, rows failing validation)
- Slug collision check before any write
- One all-or-nothing load transaction per run
- Detailed error context and logging
- IngestionRun audit rows that survive a rolled-back load
"""

from datetime import date
from typing import Dict, Any, List, Optional, Union
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from ingestion.base import DataSource, RunTracker
from ingestion.transformers.normalizer import RecordNormalizer
from ingestion.transformers.scoring import score_record
from ingestion.transformers.deduplicator import EntityDeduplicator, check_slug_collisions
from ingestion.loaders.salary_loader import SalaryDataLoader
from models.base import IngestionStatus
from models.occupation import Occupation
from models.metro import Metro
from models.salary import SalaryFact
from schemas.normalized import ScoredRecord
from core.config import settings
from core.exceptions import (
    ETLException,
    ExtractionError,
    LoadError,
    NormalizationError,
)

logger = logging.getLogger(__name__)

# Cap on per-row errors kept in the run's error_details
MAX_RECORDED_ROW_ERRORS = 50


def parse_release_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    return date.fromisoformat(value) if value else None


async def database_summary(session: AsyncSession) -> Dict[str, int]:
    """Row counts across the published tables"""
    occupations = await session.scalar(select(func.count()).select_from(Occupation))
    metros = await session.scalar(select(func.count()).select_from(Metro))
    salary_records = await session.scalar(select(func.count()).select_from(SalaryFact))
    indexable_pages = await session.scalar(
        select(func.count()).select_from(SalaryFact).where(SalaryFact.is_indexable.is_(True))
    )
    return {
        "occupations": occupations or 0,
        "metros": metros or 0,
        "salary_records": salary_records or 0,
        "indexable_pages": indexable_pages or 0,
    }


class IngestionRunner:
    """
    Ingestion Orchestrator

    Responsibilities:
    - Orchestrate Extract -> Normalize -> Score -> Dedupe -> Load
    - Own the load transaction (the loader never commits)
    - Record accurate run metrics, including for failed runs
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.tracker = RunTracker(session_factory)

    async def run(
        self,
        extractor: DataSource,
        data_period: Optional[str] = None,
        release_date: Union[str, date, None] = None,
        source_url: Optional[str] = None,
        data_year: Optional[int] = None,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Run the full pipeline for one input file.

        Pipeline phases:
        1. Extract - read rows (group pre-filter applied by the extractor)
        2. Normalize - typed records, rejected rows counted
        3. Score and deduplicate - entity drafts, slug collision check
        4. Load - entities, id maps, facts, metadata in one transaction

        Returns:
            Dictionary with run statistics and the post-load database summary

        Raises:
            ExtractionError: input could not be read
            SlugCollisionError: two source codes share a slug
            LoadError: the load transaction failed and was rolled back
            ETLException: any other failure
        """
        data_period = data_period or settings.DATA_PERIOD
        data_year = data_year or settings.DATA_YEAR
        source_url = source_url or settings.BLS_SOURCE_URL
        release = parse_release_date(
            release_date if release_date is not None else settings.BLS_RELEASE_DATE
        )

        stats: Dict[str, int] = {
            "rows_read": 0,
            "rows_admitted": 0,
            "rows_rejected": 0,
            "occupations_loaded": 0,
            "metros_loaded": 0,
            "facts_loaded": 0,
            "facts_skipped": 0,
            "indexable_facts": 0,
        }
        row_errors: List[Dict[str, Any]] = []

        await self.tracker.start_run(
            source_name=extractor.source_name,
            file_path=extractor.location,
            data_period=data_period,
            dry_run=dry_run
        )

        try:
            # --------------------------------------------------
            # PHASE 1: EXTRACTION
            # --------------------------------------------------
            try:
                rows = await extractor.fetch_data()
            except ETLException:
                raise
            except Exception as e:
                raise ExtractionError(
                    "Unexpected error during extraction",
                    context={"source_name": extractor.source_name, "file_path": extractor.location},
                    original_exception=e
                )

            stats["rows_read"] = extractor.rows_read

            # --------------------------------------------------
            # PHASE 2: NORMALIZATION + SCORING
            # --------------------------------------------------
            logger.info(f"Processing {len(rows)} rows")
            normalizer = RecordNormalizer(extractor.adapter)
            scored: List[ScoredRecord] = []

            for index, row in enumerate(rows):
                try:
                    record = normalizer.normalize(row, row_index=index)
                except NormalizationError as e:
                    stats["rows_rejected"] += 1
                    if len(row_errors) < MAX_RECORDED_ROW_ERRORS:
                        row_errors.append(e.to_dict())
                    logger.warning(f"Row {index} rejected: {e.message}")
                    continue

                if record is None:
                    stats["rows_rejected"] += 1
                    continue

                dqs, indexable = score_record(record)
                scored.append(ScoredRecord(record=record, dqs=dqs, is_indexable=indexable))

            stats["rows_admitted"] = len(scored)
            logger.info(
                f"Normalization complete: {stats['rows_admitted']} admitted, "
                f"{stats['rows_rejected']} rejected"
            )

            # --------------------------------------------------
            # PHASE 3: DEDUPLICATION
            # --------------------------------------------------
            entities = EntityDeduplicator().build(scored)
            check_slug_collisions(entities)

            # --------------------------------------------------
            # PHASE 4: LOAD (single transaction)
            # --------------------------------------------------
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        loader = SalaryDataLoader(session)

                        stats["occupations_loaded"] = await loader.upsert_occupations(
                            list(entities.occupations.values())
                        )
                        stats["metros_loaded"] = await loader.upsert_metros(
                            list(entities.metros.values())
                        )

                        occupation_ids = await loader.occupation_id_map()
                        metro_ids = await loader.metro_id_map()

                        fact_stats = await loader.upsert_facts(
                            entities.fact_list, occupation_ids, metro_ids, data_year=data_year
                        )
                        stats.update(fact_stats)
                        stats["indexable_facts"] = entities.indexable_count

                        if not dry_run:
                            record_count = await session.scalar(
                                select(func.count()).select_from(SalaryFact)
                            )
                            await loader.upsert_metadata(
                                data_period=data_period,
                                record_count=record_count or 0,
                                bls_release_date=release,
                                source_url=source_url
                            )
                except ETLException as e:
                    raise LoadError(
                        "Load transaction rolled back",
                        context={"source_name": extractor.source_name, "cause": e.message},
                        original_exception=e
                    )
                except Exception as e:
                    raise LoadError(
                        "Load transaction rolled back",
                        context={"source_name": extractor.source_name},
                        original_exception=e
                    )

                summary = await database_summary(session)

            await self.tracker.complete_run(
                status=IngestionStatus.SUCCESS,
                stats=stats,
                error_details={"row_errors": row_errors} if row_errors else None
            )

            logger.info(
                f"Ingestion complete - Occupations: {summary['occupations']}, "
                f"Metro areas: {summary['metros']}, "
                f"Salary records: {summary['salary_records']}, "
                f"Indexable pages: {summary['indexable_pages']}"
            )

            result: Dict[str, Any] = {"status": "success", "dry_run": dry_run}
            result.update(stats)
            result["summary"] = summary
            if self.tracker.run is not None:
                result["run_id"] = str(self.tracker.run.run_id)
            return result

        except ETLException as e:
            logger.error(
                f"Ingestion failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            await self.tracker.complete_run(
                status=IngestionStatus.FAILED,
                stats=stats,
                error_message=e.message,
                error_details=e.to_dict()
            )
            raise

        except Exception as e:
            logger.exception("Unexpected error in ingestion pipeline")
            await self.tracker.complete_run(
                status=IngestionStatus.FAILED,
                stats=stats,
                error_message=str(e)
            )
            raise ETLException(
                "Unexpected error in ingestion pipeline",
                context={"source_name": extractor.source_name, **stats},
                original_exception=e
            )
