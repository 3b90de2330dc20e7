"""
Pydantic schemas for normalized spreadsheet rows and entity drafts
"""

from pydantic import BaseModel, Field, validator
from typing import Optional


class SalaryRecord(BaseModel):
    """
    One admitted spreadsheet row in a single typed shape.

    Wage and employment fields are None when BLS suppressed or omitted the
    value. They are never coerced to zero.
    """

    occ_code: str = Field(..., min_length=1, max_length=10)
    occ_title: str = Field(..., min_length=1, max_length=255)
    occ_group: str = Field(default="detailed", max_length=20)
    area_code: str = Field(..., min_length=1, max_length=10)
    area_title: str = Field(..., min_length=1, max_length=255)

    tot_emp: Optional[float] = None
    h_mean: Optional[float] = None
    a_mean: Optional[float] = None
    a_median: Optional[float] = None
    a_pct10: Optional[float] = None
    a_pct25: Optional[float] = None
    a_pct75: Optional[float] = None
    a_pct90: Optional[float] = None

    @validator("occ_code", "area_code", "occ_title", "area_title", "occ_group", pre=True)
    def clean_text(cls, v):
        """Coerce spreadsheet cells (ints for area codes) to trimmed strings"""
        if v is None:
            return v
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v).strip()


class ScoredRecord(BaseModel):
    """A normalized row with its data quality score attached"""

    record: SalaryRecord
    dqs: float = Field(..., ge=0, le=1)
    is_indexable: bool


class OccupationDraft(BaseModel):
    """Occupation entity as built from one ingestion run"""

    occ_code: str
    occ_title: str
    occ_group: str
    slug: str


class MetroDraft(BaseModel):
    """Metro entity as built from one ingestion run"""

    area_code: str
    area_title: str
    slug: str
    state_abbr: Optional[str] = None


class SalaryFactDraft(BaseModel):
    """Salary fact keyed by source codes, resolved to ids at load time"""

    occ_code: str
    area_code: str
    tot_emp: Optional[int] = None
    h_mean: Optional[float] = None
    a_mean: Optional[float] = None
    a_median: Optional[float] = None
    a_pct10: Optional[float] = None
    a_pct25: Optional[float] = None
    a_pct75: Optional[float] = None
    a_pct90: Optional[float] = None
    dqs: float = Field(..., ge=0, le=1)
    is_indexable: bool

    @property
    def key(self):
        return (self.occ_code, self.area_code)
