from sqlalchemy import Column, Integer, String, Date, DateTime, Text, CheckConstraint
from datetime import datetime
from models.base import Base

METADATA_ROW_ID = 1


class DataMetadata(Base):
    """
    Singleton row describing the currently loaded BLS data vintage.

    The check constraint pins the primary key to 1 so the row is always
    overwritten, never multiplied.
    """
    __tablename__ = "data_metadata"

    id = Column(Integer, primary_key=True, default=METADATA_ROW_ID)

    data_period = Column(String(20), nullable=False)  # e.g. "May 2024"
    bls_release_date = Column(Date, nullable=True)
    last_ingested_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_checked_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    record_count = Column(Integer, nullable=True)
    source_url = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(f"id = {METADATA_ROW_ID}", name="single_row"),
    )
