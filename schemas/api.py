"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID
from models.base import IngestionStatus


# ============================================================================
# Metadata / Health Schemas
# ============================================================================

class DataMetadataInfo(BaseModel):
    """Currently loaded BLS data vintage"""
    data_period: str
    bls_release_date: Optional[date] = None
    last_ingested_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    record_count: Optional[int] = None
    source_url: Optional[str] = None
    is_default: bool = Field(False, description="True when no metadata row exists yet")

    class Config:
        from_attributes = True


class IngestionRunInfo(BaseModel):
    """Ingestion run summary for health check"""
    run_id: UUID
    source_name: str
    status: IngestionStatus
    dry_run: bool = False
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    rows_read: int = 0
    rows_admitted: int = 0
    rows_rejected: int = 0
    facts_loaded: int = 0
    facts_skipped: int = 0
    indexable_facts: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    latest_run: Optional[IngestionRunInfo] = None
    data_metadata: Optional[DataMetadataInfo] = None
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"

        latest_run = values.get("latest_run")
        if latest_run is not None and latest_run.status == IngestionStatus.FAILED.value:
            return "degraded"

        return "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-04-10T10:30:00Z",
                "database_connected": True,
                "latest_run": {
                    "run_id": "550e8400-e29b-41d4-a716-446655440000",
                    "source_name": "MSA_M2024_dl.xlsx",
                    "status": "success",
                    "started_at": "2025-04-10T10:00:00Z",
                    "rows_read": 160534,
                    "rows_admitted": 141164,
                    "facts_loaded": 141164
                },
                "data_metadata": {
                    "data_period": "May 2024",
                    "bls_release_date": "2025-04-02",
                    "record_count": 141164
                }
            }
        }


# ============================================================================
# Entity Schemas
# ============================================================================

class OccupationInfo(BaseModel):
    id: int
    occ_code: str
    occ_title: str
    occ_group: str = "detailed"
    slug: str

    class Config:
        from_attributes = True


class MetroInfo(BaseModel):
    id: int
    area_code: str
    area_title: str
    slug: str
    state_abbr: Optional[str] = None

    class Config:
        from_attributes = True


class SalaryFigures(BaseModel):
    """Wage and employment figures of one salary fact"""
    tot_emp: Optional[int] = None
    h_mean: Optional[float] = None
    a_mean: Optional[float] = None
    a_median: Optional[float] = None
    a_pct10: Optional[float] = None
    a_pct25: Optional[float] = None
    a_pct75: Optional[float] = None
    a_pct90: Optional[float] = None
    dqs: float = 0.0
    is_indexable: bool = False
    data_year: Optional[int] = None

    class Config:
        from_attributes = True


# ============================================================================
# Occupation Schemas
# ============================================================================

class OccupationListItem(BaseModel):
    """Occupation with at least one indexable salary page"""
    id: int
    occ_code: str
    occ_title: str
    slug: str
    avg_median: Optional[float] = None
    metro_count: int = 0


class OccupationListResponse(BaseModel):
    total: int
    occupations: List[OccupationListItem]


class OccupationNationalStats(BaseModel):
    avg_median: Optional[float] = None
    min_median: Optional[float] = None
    max_median: Optional[float] = None
    total_employment: Optional[int] = None
    metro_count: int = 0


class MetroSalaryItem(BaseModel):
    """One occupation's salary in one metro, from the occupation side"""
    metro_id: int
    area_title: str
    metro_slug: str
    state_abbr: Optional[str] = None
    a_median: Optional[float] = None
    a_mean: Optional[float] = None
    tot_emp: Optional[int] = None


class OccupationDetailResponse(BaseModel):
    occupation: OccupationInfo
    stats: OccupationNationalStats
    salaries: List[MetroSalaryItem]


# ============================================================================
# Location Schemas
# ============================================================================

class LocationListItem(BaseModel):
    """Metro with at least one indexable salary page"""
    id: int
    area_code: str
    area_title: str
    slug: str
    state_abbr: Optional[str] = None
    occupation_count: int = 0
    top_salary: Optional[float] = None


class LocationListResponse(BaseModel):
    total: int
    locations: List[LocationListItem]


class LocationStats(BaseModel):
    avg_median: Optional[float] = None
    top_salary: Optional[float] = None
    occupation_count: int = 0
    total_employment: Optional[int] = None
    top_occupation: Optional[str] = None


class OccupationSalaryItem(BaseModel):
    """One occupation's salary in one metro, from the metro side"""
    occupation_id: int
    occ_title: str
    occ_slug: str
    a_median: Optional[float] = None
    a_mean: Optional[float] = None
    tot_emp: Optional[int] = None


class LocationDetailResponse(BaseModel):
    metro: MetroInfo
    stats: LocationStats
    salaries: List[OccupationSalaryItem]


# ============================================================================
# Salary Page Schemas
# ============================================================================

class RelatedSalary(BaseModel):
    occ_title: str
    occ_slug: str
    area_title: str
    metro_slug: str
    a_median: Optional[float] = None
    tot_emp: Optional[int] = None


class SalaryDetailResponse(BaseModel):
    occupation: OccupationInfo
    metro: MetroInfo
    salary: SalaryFigures
    related_occupations: List[RelatedSalary] = Field(default_factory=list)
    other_locations: List[RelatedSalary] = Field(default_factory=list)


# ============================================================================
# Search Schemas
# ============================================================================

class OccupationSearchHit(BaseModel):
    occ_title: str
    slug: str
    avg_salary: Optional[float] = None


class LocationSearchHit(BaseModel):
    area_title: str
    slug: str
    state_abbr: Optional[str] = None


class SearchResult(BaseModel):
    type: str = Field(..., description="occupation, location or salary")
    title: str
    subtitle: Optional[str] = None
    href: str
    a_median: Optional[float] = None


class SearchResponse(BaseModel):
    occupations: List[OccupationSearchHit] = Field(default_factory=list)
    locations: List[LocationSearchHit] = Field(default_factory=list)
    results: List[SearchResult] = Field(default_factory=list)
    error: Optional[str] = None


# ============================================================================
# Statistics Schemas
# ============================================================================

class TopOccupation(BaseModel):
    occ_title: str
    slug: str
    avg_median: Optional[float] = None
    metro_count: int = 0


class TopMetro(BaseModel):
    area_title: str
    slug: str
    state_abbr: Optional[str] = None
    occupation_count: int = 0


class StatsResponse(BaseModel):
    """Statistics response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    occupation_count: int
    metro_count: int
    salary_pages: int = Field(..., description="Indexable salary facts")

    top_occupations: List[TopOccupation] = Field(default_factory=list)
    top_metros: List[TopMetro] = Field(default_factory=list)

    data_metadata: Optional[DataMetadataInfo] = None

    class Config:
        json_schema_extra = {
            "example": {
                "timestamp": "2025-04-10T10:30:00Z",
                "occupation_count": 823,
                "metro_count": 393,
                "salary_pages": 138522,
                "top_occupations": [
                    {"occ_title": "Cardiologists", "slug": "cardiologists", "avg_median": 421330, "metro_count": 47}
                ],
                "top_metros": [
                    {"area_title": "New York-Newark-Jersey City, NY-NJ-PA", "slug": "new-york-newark-jersey-city-ny-nj-pa",
                     "state_abbr": "NY", "occupation_count": 781}
                ]
            }
        }


# ============================================================================
# Release Check Schemas
# ============================================================================

class ReleaseInfo(BaseModel):
    """Latest release advertised on the BLS OEWS page"""
    period: str
    year: int
    download_url: str


class ReleaseCheckResult(BaseModel):
    has_update: bool
    current_period: str
    latest_period: Optional[str] = None
    download_url: Optional[str] = None
    checked_at: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Resource not found",
                "detail": "No occupation with slug 'astronaut-chefs'",
                "timestamp": "2025-04-10T10:30:00Z"
            }
        }
