from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Occupation(Base):
    """
    One standardized BLS job classification (SOC code).

    Design:
    - occ_code is the stable external key used for upserts
    - slug is derived from the title and drives public URLs
    - rows are created and updated by ingestion, never deleted by it
    """
    __tablename__ = "occupations"

    id = Column(Integer, primary_key=True, autoincrement=True)

    occ_code = Column(String(10), unique=True, nullable=False)
    occ_title = Column(String(255), nullable=False)
    occ_group = Column(String(20), nullable=False, default="detailed")
    slug = Column(String(255), unique=True, nullable=False)

    is_indexable = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    salary_facts = relationship(
        "SalaryFact",
        back_populates="occupation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_occupations_indexable", "is_indexable"),
    )
