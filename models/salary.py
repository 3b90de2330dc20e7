from sqlalchemy import (
    Column, Integer, Numeric, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


def _wage_column(precision: int = 12):
    return Column(Numeric(precision, 2, asdecimal=False), nullable=True)


class SalaryFact(Base):
    """
    One (occupation, metro) wage observation for the loaded data period.

    Snapshot semantics: re-ingestion updates the row in place, no history
    is kept. Missing BLS values are stored as NULL, never as zero.

    is_indexable = dqs >= 0.50 AND a_median IS NOT NULL AND a_median > 0
    """
    __tablename__ = "salary_data"

    id = Column(Integer, primary_key=True, autoincrement=True)

    occupation_id = Column(
        Integer, ForeignKey("occupations.id", ondelete="CASCADE"), nullable=False
    )
    metro_id = Column(
        Integer, ForeignKey("metros.id", ondelete="CASCADE"), nullable=False
    )

    # Employment and wages
    tot_emp = Column(Integer, nullable=True)
    h_mean = _wage_column(10)
    a_mean = _wage_column()
    a_median = _wage_column()
    a_pct10 = _wage_column()
    a_pct25 = _wage_column()
    a_pct75 = _wage_column()
    a_pct90 = _wage_column()

    # Data quality
    dqs = Column(Numeric(3, 2, asdecimal=False), nullable=False, default=0.0)
    is_indexable = Column(Boolean, nullable=False, default=False)
    data_year = Column(Integer, nullable=False, default=2024)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    occupation = relationship("Occupation", back_populates="salary_facts")
    metro = relationship("Metro", back_populates="salary_facts")

    __table_args__ = (
        UniqueConstraint("occupation_id", "metro_id", name="uq_salary_occupation_metro"),
        Index("idx_salary_occupation", "occupation_id"),
        Index("idx_salary_metro", "metro_id"),
        Index("idx_salary_indexable", "is_indexable"),
        Index("idx_salary_tot_emp", "tot_emp"),
    )
