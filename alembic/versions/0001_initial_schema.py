"""initial salary schema

Revision ID: 0001
Revises:
Create Date: 2025-04-10
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "occupations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("occ_code", sa.String(10), nullable=False, unique=True),
        sa.Column("occ_title", sa.String(255), nullable=False),
        sa.Column("occ_group", sa.String(20), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("is_indexable", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_occupations_indexable", "occupations", ["is_indexable"])

    op.create_table(
        "metros",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("area_code", sa.String(10), nullable=False, unique=True),
        sa.Column("area_title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("state_abbr", sa.String(5), nullable=True),
        sa.Column("is_indexable", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_metros_state", "metros", ["state_abbr"])
    op.create_index("idx_metros_indexable", "metros", ["is_indexable"])

    wage = dict(nullable=True)
    op.create_table(
        "salary_data",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "occupation_id", sa.Integer(),
            sa.ForeignKey("occupations.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "metro_id", sa.Integer(),
            sa.ForeignKey("metros.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("tot_emp", sa.Integer(), nullable=True),
        sa.Column("h_mean", sa.Numeric(10, 2), **wage),
        sa.Column("a_mean", sa.Numeric(12, 2), **wage),
        sa.Column("a_median", sa.Numeric(12, 2), **wage),
        sa.Column("a_pct10", sa.Numeric(12, 2), **wage),
        sa.Column("a_pct25", sa.Numeric(12, 2), **wage),
        sa.Column("a_pct75", sa.Numeric(12, 2), **wage),
        sa.Column("a_pct90", sa.Numeric(12, 2), **wage),
        sa.Column("dqs", sa.Numeric(3, 2), nullable=False),
        sa.Column("is_indexable", sa.Boolean(), nullable=False),
        sa.Column("data_year", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("occupation_id", "metro_id", name="uq_salary_occupation_metro"),
    )
    op.create_index("idx_salary_occupation", "salary_data", ["occupation_id"])
    op.create_index("idx_salary_metro", "salary_data", ["metro_id"])
    op.create_index("idx_salary_indexable", "salary_data", ["is_indexable"])
    op.create_index("idx_salary_tot_emp", "salary_data", ["tot_emp"])

    op.create_table(
        "data_metadata",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("data_period", sa.String(20), nullable=False),
        sa.Column("bls_release_date", sa.Date(), nullable=True),
        sa.Column("last_ingested_at", sa.DateTime(), nullable=False),
        sa.Column("last_checked_at", sa.DateTime(), nullable=False),
        sa.Column("record_count", sa.Integer(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.CheckConstraint("id = 1", name="single_row"),
    )

    op.create_table(
        "ingestion_runs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("run_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("source_name", sa.String(100), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=True),
        sa.Column("data_period", sa.String(20), nullable=True),
        sa.Column(
            "status",
            sa.Enum("RUNNING", "SUCCESS", "FAILED", name="ingestionstatus"),
            nullable=False
        ),
        sa.Column("dry_run", sa.Boolean(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("rows_read", sa.Integer()),
        sa.Column("rows_admitted", sa.Integer()),
        sa.Column("rows_rejected", sa.Integer()),
        sa.Column("occupations_loaded", sa.Integer()),
        sa.Column("metros_loaded", sa.Integer()),
        sa.Column("facts_loaded", sa.Integer()),
        sa.Column("facts_skipped", sa.Integer()),
        sa.Column("indexable_facts", sa.Integer()),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_details", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_ingestion_runs_run_id", "ingestion_runs", ["run_id"])
    op.create_index("ix_ingestion_runs_source_name", "ingestion_runs", ["source_name"])
    op.create_index("ix_ingestion_runs_status", "ingestion_runs", ["status"])
    op.create_index("ix_ingestion_runs_started_at", "ingestion_runs", ["started_at"])
    op.create_index("idx_ingestion_run_status", "ingestion_runs", ["status", "started_at"])


def downgrade():
    op.drop_table("ingestion_runs")
    sa.Enum(name="ingestionstatus").drop(op.get_bind(), checkfirst=True)
    op.drop_table("data_metadata")
    op.drop_table("salary_data")
    op.drop_table("metros")
    op.drop_table("occupations")
