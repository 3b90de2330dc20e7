from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Metro(Base):
    """
    One BLS metropolitan / nonmetropolitan labor-market area.

    area_title is usually the compound "City-City, ST-ST" form; state_abbr
    holds the first state code of the trailing suffix, or NULL when the
    title has none.
    """
    __tablename__ = "metros"

    id = Column(Integer, primary_key=True, autoincrement=True)

    area_code = Column(String(10), unique=True, nullable=False)
    area_title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    state_abbr = Column(String(5), nullable=True)

    is_indexable = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    salary_facts = relationship(
        "SalaryFact",
        back_populates="metro",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_metros_state", "state_abbr"),
        Index("idx_metros_indexable", "is_indexable"),
    )
