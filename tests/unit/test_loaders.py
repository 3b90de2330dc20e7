"""
Unit tests for data loaders
"""

import pytest
from unittest.mock import AsyncMock, Mock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import DBAPIError
from ingestion.loaders.salary_loader import SalaryDataLoader
from schemas.normalized import MetroDraft, OccupationDraft, SalaryFactDraft
from core.exceptions import UpsertError


def _fact(occ_code, area_code, **values):
    values.setdefault("dqs", 0.85)
    values.setdefault("is_indexable", True)
    return SalaryFactDraft(occ_code=occ_code, area_code=area_code, **values)


def _row_param(compiled, name):
    """Value bound for the first VALUES row of a multi-row insert"""
    for key, value in compiled.params.items():
        if key == name or key.startswith(f"{name}_m"):
            return value
    raise KeyError(name)


def _compiled(mock_session, call_index=0):
    stmt = mock_session.execute.call_args_list[call_index].args[0]
    return stmt.compile(dialect=postgresql.dialect())


class TestSalaryDataLoader:
    """Test salary upsert loader"""

    @pytest.mark.asyncio
    async def test_upsert_occupations_single_statement_per_batch(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, batch_size=2, dialect_name="postgresql")

        drafts = [
            OccupationDraft(occ_code=f"15-12{i:02d}", occ_title=f"Occupation {i}",
                            occ_group="detailed", slug=f"occupation-{i}")
            for i in range(5)
        ]

        result = await loader.upsert_occupations(drafts)

        assert result == 5
        assert mock_session.execute.call_count == 3
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_slug_preserved_on_conflict_by_default(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, regenerate_slugs=False, dialect_name="postgresql")

        await loader.upsert_occupations([
            OccupationDraft(occ_code="15-1252", occ_title="Software Developers",
                            occ_group="detailed", slug="software-developers")
        ])

        sql = str(_compiled(mock_session))
        assert "ON CONFLICT (occ_code) DO UPDATE" in sql
        update_clause = sql.split("DO UPDATE SET", 1)[1]
        assert "occ_title" in update_clause
        assert "slug" not in update_clause

    @pytest.mark.asyncio
    async def test_regenerate_slugs_updates_slug(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, regenerate_slugs=True, dialect_name="postgresql")

        await loader.upsert_metros([
            MetroDraft(area_code="12420", area_title="Austin-Round Rock-San Marcos, TX",
                       slug="austin-round-rock-san-marcos-tx", state_abbr="TX")
        ])

        update_clause = str(_compiled(mock_session)).split("DO UPDATE SET", 1)[1]
        assert "slug" in update_clause
        assert "state_abbr" in update_clause

    @pytest.mark.asyncio
    async def test_upsert_empty_list(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        assert await loader.upsert_occupations([]) == 0
        assert await loader.upsert_metros([]) == 0
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_facts_skips_unresolved_codes(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        facts = [
            _fact("15-1252", "35620", a_median=165000.0, tot_emp=85310),
            _fact("15-1252", "99999", a_median=100000.0),
            _fact("99-9999", "35620", a_median=100000.0),
        ]

        result = await loader.upsert_facts(
            facts,
            occupation_ids={"15-1252": 1},
            metro_ids={"35620": 10},
            data_year=2024
        )

        assert result == {"facts_loaded": 1, "facts_skipped": 2}
        assert mock_session.execute.call_count == 1

        compiled = _compiled(mock_session)
        assert _row_param(compiled, "occupation_id") == 1
        assert _row_param(compiled, "metro_id") == 10
        assert _row_param(compiled, "data_year") == 2024

    @pytest.mark.asyncio
    async def test_missing_wages_stay_null(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        await loader.upsert_facts(
            [_fact("45-2092", "35620", dqs=0.0, is_indexable=False)],
            occupation_ids={"45-2092": 3},
            metro_ids={"35620": 10}
        )

        compiled = _compiled(mock_session)
        assert _row_param(compiled, "a_median") is None
        assert _row_param(compiled, "tot_emp") is None
        assert _row_param(compiled, "is_indexable") is False

    @pytest.mark.asyncio
    async def test_upsert_fact_batch_conflict_target(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        await loader.upsert_facts(
            [_fact("15-1252", "35620", a_median=165000.0)],
            occupation_ids={"15-1252": 1},
            metro_ids={"35620": 10}
        )

        sql = str(_compiled(mock_session))
        assert "ON CONFLICT (occupation_id, metro_id) DO UPDATE" in sql
        update_clause = sql.split("DO UPDATE SET", 1)[1]
        for column in ("a_median", "dqs", "is_indexable", "updated_at"):
            assert column in update_clause
        assert "created_at" not in update_clause

    @pytest.mark.asyncio
    async def test_database_error_wrapped(self):
        mock_session = AsyncMock()
        mock_session.execute = AsyncMock(
            side_effect=DBAPIError("INSERT", {}, Exception("connection reset"))
        )
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        with pytest.raises(UpsertError) as exc_info:
            await loader.upsert_occupations([
                OccupationDraft(occ_code="15-1252", occ_title="Software Developers",
                                occ_group="detailed", slug="software-developers")
            ])

        assert exc_info.value.context["table_name"] == "occupations"

    @pytest.mark.asyncio
    async def test_unsupported_dialect(self):
        loader = SalaryDataLoader(AsyncMock(), dialect_name="mysql")

        with pytest.raises(UpsertError):
            await loader.upsert_metadata(data_period="May 2024", record_count=10)

    def test_dialect_read_from_bind(self):
        mock_session = Mock()
        mock_session.get_bind.return_value.dialect.name = "sqlite"

        loader = SalaryDataLoader(mock_session)

        assert loader.dialect_name == "sqlite"

    @pytest.mark.asyncio
    async def test_upsert_metadata_singleton(self):
        mock_session = AsyncMock()
        loader = SalaryDataLoader(mock_session, dialect_name="postgresql")

        await loader.upsert_metadata(data_period="May 2024", record_count=141164)

        compiled = _compiled(mock_session)
        assert "ON CONFLICT (id) DO UPDATE" in str(compiled)
        assert compiled.params["id"] == 1
        assert compiled.params["record_count"] == 141164
