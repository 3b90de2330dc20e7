from sqlalchemy import Column, BigInteger, Boolean, String, Enum, DateTime, Float, Integer, Text, Index, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime
import uuid
from models.base import Base, IngestionStatus


class IngestionRun(Base):
    """
    Tracks metadata for each ingestion attempt.

    Purpose:
    - Audit trail of all runs, including failed ones
    - Row accounting (read / admitted / rejected / loaded / skipped)
    - Error tracking and debugging

    Rows are written in their own short transactions so a failed run stays
    recorded after its data writes have been rolled back.
    """
    __tablename__ = "ingestion_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    run_id = Column(Uuid, default=uuid.uuid4, unique=True, nullable=False, index=True)

    # Source identification
    source_name = Column(String(100), nullable=False, index=True)
    file_path = Column(String(500), nullable=True)
    data_period = Column(String(20), nullable=True)

    status = Column(Enum(IngestionStatus), default=IngestionStatus.RUNNING, nullable=False, index=True)
    dry_run = Column(Boolean, nullable=False, default=False)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    rows_read = Column(Integer, default=0)
    rows_admitted = Column(Integer, default=0)
    rows_rejected = Column(Integer, default=0)
    occupations_loaded = Column(Integer, default=0)
    metros_loaded = Column(Integer, default=0)
    facts_loaded = Column(Integer, default=0)
    facts_skipped = Column(Integer, default=0)
    indexable_facts = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    __table_args__ = (
        Index("idx_ingestion_run_status", "status", "started_at"),
    )
