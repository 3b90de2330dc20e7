"""
Load deduplicated salary entities with upsert logic (idempotency)
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects import postgresql, sqlite
from models.occupation import Occupation
from models.metro import Metro
from models.salary import SalaryFact
from models.metadata import DataMetadata, METADATA_ROW_ID
from schemas.normalized import MetroDraft, OccupationDraft, SalaryFactDraft
from core.config import settings
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)

WAGE_FIELDS = ("h_mean", "a_mean", "a_median", "a_pct10", "a_pct25", "a_pct75", "a_pct90")

_INSERT_CONSTRUCTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SalaryDataLoader:
    """
    Load salary data with idempotent upsert operations.

    Phases:
    1. Upsert occupations, then metros, keyed by source code
    2. Read back code -> id maps
    3. Upsert facts in batches keyed by (occupation_id, metro_id)

    Ensures:
    - No duplicate rows on repeated runs
    - Entity ids and created_at survive re-ingestion
    - Nothing is committed here: the caller owns the transaction
    """

    def __init__(
        self,
        db_session: AsyncSession,
        batch_size: Optional[int] = None,
        regenerate_slugs: Optional[bool] = None,
        dialect_name: Optional[str] = None
    ):
        self.db = db_session
        self.batch_size = batch_size or settings.INGEST_BATCH_SIZE
        self.regenerate_slugs = (
            settings.REGENERATE_SLUGS if regenerate_slugs is None else regenerate_slugs
        )
        self._dialect_name = dialect_name

    @property
    def dialect_name(self) -> str:
        if self._dialect_name is None:
            self._dialect_name = self.db.get_bind().dialect.name
        return self._dialect_name

    def _insert(self, model):
        try:
            construct = _INSERT_CONSTRUCTS[self.dialect_name]
        except KeyError:
            raise UpsertError(
                f"Upsert is not supported on the {self.dialect_name} dialect",
                context={"table_name": model.__tablename__}
            )
        return construct(model)

    def _batches(self, rows: Sequence[Any]):
        for i in range(0, len(rows), self.batch_size):
            yield i // self.batch_size, rows[i:i + self.batch_size]

    async def _execute_batch(self, stmt, table_name: str, conflict_fields: List[str], batch_index: int):
        try:
            await self.db.execute(stmt)
        except DBAPIError as e:
            raise UpsertError(
                f"Upsert into {table_name} failed",
                context={
                    "table_name": table_name,
                    "conflict_fields": conflict_fields,
                    "batch_index": batch_index,
                },
                original_exception=e
            )

    # ------------------------------------------------------------------
    # Phase 1: entities
    # ------------------------------------------------------------------

    async def upsert_occupations(self, drafts: Sequence[OccupationDraft]) -> int:
        """INSERT ... ON CONFLICT (occ_code) DO UPDATE"""
        if not drafts:
            return 0

        now = datetime.utcnow()
        rows = [
            {
                "occ_code": d.occ_code,
                "occ_title": d.occ_title,
                "occ_group": d.occ_group,
                "slug": d.slug,
                "is_indexable": True,
                "created_at": now,
                "updated_at": now,
            }
            for d in drafts
        ]

        for batch_index, batch in self._batches(rows):
            stmt = self._insert(Occupation).values(batch)
            set_ = {
                "occ_title": stmt.excluded.occ_title,
                "occ_group": stmt.excluded.occ_group,
                "updated_at": stmt.excluded.updated_at,
            }
            if self.regenerate_slugs:
                set_["slug"] = stmt.excluded.slug
            stmt = stmt.on_conflict_do_update(index_elements=["occ_code"], set_=set_)
            await self._execute_batch(stmt, "occupations", ["occ_code"], batch_index)

        logger.info(f"Upserted {len(rows)} occupations")
        return len(rows)

    async def upsert_metros(self, drafts: Sequence[MetroDraft]) -> int:
        """INSERT ... ON CONFLICT (area_code) DO UPDATE"""
        if not drafts:
            return 0

        now = datetime.utcnow()
        rows = [
            {
                "area_code": d.area_code,
                "area_title": d.area_title,
                "slug": d.slug,
                "state_abbr": d.state_abbr,
                "is_indexable": True,
                "created_at": now,
                "updated_at": now,
            }
            for d in drafts
        ]

        for batch_index, batch in self._batches(rows):
            stmt = self._insert(Metro).values(batch)
            set_ = {
                "area_title": stmt.excluded.area_title,
                "state_abbr": stmt.excluded.state_abbr,
                "updated_at": stmt.excluded.updated_at,
            }
            if self.regenerate_slugs:
                set_["slug"] = stmt.excluded.slug
            stmt = stmt.on_conflict_do_update(index_elements=["area_code"], set_=set_)
            await self._execute_batch(stmt, "metros", ["area_code"], batch_index)

        logger.info(f"Upserted {len(rows)} metro areas")
        return len(rows)

    # ------------------------------------------------------------------
    # Phase 2: id resolution
    # ------------------------------------------------------------------

    async def occupation_id_map(self) -> Dict[str, int]:
        result = await self.db.execute(select(Occupation.occ_code, Occupation.id))
        return {code: id_ for code, id_ in result.all()}

    async def metro_id_map(self) -> Dict[str, int]:
        result = await self.db.execute(select(Metro.area_code, Metro.id))
        return {code: id_ for code, id_ in result.all()}

    # ------------------------------------------------------------------
    # Phase 3: facts
    # ------------------------------------------------------------------

    async def upsert_fact_batch(self, rows: List[Dict[str, Any]], batch_index: int = 0) -> int:
        """Upsert one batch of resolved fact rows"""
        if not rows:
            return 0

        stmt = self._insert(SalaryFact).values(rows)
        set_ = {field: stmt.excluded[field] for field in WAGE_FIELDS}
        set_.update(
            tot_emp=stmt.excluded.tot_emp,
            dqs=stmt.excluded.dqs,
            is_indexable=stmt.excluded.is_indexable,
            data_year=stmt.excluded.data_year,
            updated_at=stmt.excluded.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["occupation_id", "metro_id"],
            set_=set_
        )
        await self._execute_batch(stmt, "salary_data", ["occupation_id", "metro_id"], batch_index)
        return len(rows)

    async def upsert_facts(
        self,
        facts: Sequence[SalaryFactDraft],
        occupation_ids: Dict[str, int],
        metro_ids: Dict[str, int],
        data_year: Optional[int] = None
    ) -> Dict[str, int]:
        """
        Resolve codes to ids and upsert facts in batches.

        Rows whose codes do not resolve are skipped and counted.
        """
        data_year = data_year or settings.DATA_YEAR
        loaded = 0
        skipped = 0
        total = len(facts)

        for batch_index, batch in self._batches(list(facts)):
            now = datetime.utcnow()
            rows = []
            for fact in batch:
                occupation_id = occupation_ids.get(fact.occ_code)
                metro_id = metro_ids.get(fact.area_code)
                if occupation_id is None or metro_id is None:
                    skipped += 1
                    continue

                row = {
                    "occupation_id": occupation_id,
                    "metro_id": metro_id,
                    "tot_emp": fact.tot_emp,
                    "dqs": fact.dqs,
                    "is_indexable": fact.is_indexable,
                    "data_year": data_year,
                    "created_at": now,
                    "updated_at": now,
                }
                for field in WAGE_FIELDS:
                    row[field] = getattr(fact, field)
                rows.append(row)

            loaded += await self.upsert_fact_batch(rows, batch_index)
            logger.info(
                f"Progress: {min((batch_index + 1) * self.batch_size, total)}/{total} rows"
            )

        if skipped:
            logger.warning(f"Skipped {skipped} salary rows with unresolved codes")

        logger.info(f"Upserted {loaded} salary records")
        return {"facts_loaded": loaded, "facts_skipped": skipped}

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def upsert_metadata(
        self,
        data_period: str,
        record_count: int,
        bls_release_date: Optional[date] = None,
        source_url: Optional[str] = None
    ) -> None:
        """Overwrite the singleton data_metadata row"""
        now = datetime.utcnow()
        stmt = self._insert(DataMetadata).values(
            id=METADATA_ROW_ID,
            data_period=data_period,
            bls_release_date=bls_release_date,
            last_ingested_at=now,
            last_checked_at=now,
            record_count=record_count,
            source_url=source_url,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "data_period": stmt.excluded.data_period,
                "bls_release_date": stmt.excluded.bls_release_date,
                "last_ingested_at": stmt.excluded.last_ingested_at,
                "last_checked_at": stmt.excluded.last_checked_at,
                "record_count": stmt.excluded.record_count,
                "source_url": stmt.excluded.source_url,
            }
        )
        await self._execute_batch(stmt, "data_metadata", ["id"], 0)
        logger.info(f"Data metadata set to {data_period} ({record_count} records)")
