"""
Pydantic schemas for data validation and serialization.

Schemas:
    normalized: Typed spreadsheet rows and entity drafts used by ingestion
    api: API response models, data metadata and release check results

Usage:
    from schemas.normalized import SalaryRecord, SalaryFactDraft
    from schemas.api import HealthCheckResponse, SalaryDetailResponse

Example:
    record = SalaryRecord(
        occ_code="15-1252",
        occ_title="Software Developers",
        area_code=35620,
        area_title="New York-Newark-Jersey City, NY-NJ-PA",
        a_median=150000.0
    )

    # Area codes read from a spreadsheet as integers are coerced to strings
    assert record.area_code == "35620"
    # Suppressed values stay None, never zero
    assert record.tot_emp is None
"""

__all__ = [
    "SalaryRecord",
    "ScoredRecord",
    "OccupationDraft",
    "MetroDraft",
    "SalaryFactDraft",
    "DataMetadataInfo",
    "HealthCheckResponse",
    "StatsResponse",
    "SearchResponse",
    "ReleaseCheckResult",
]
