"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (IngestionStatus, OccupationGroup)
    occupation: Standardized BLS occupations (SOC codes)
    metro: Metropolitan labor-market areas
    salary: Occupation x metro wage facts with data-quality score
    metadata: Singleton row describing the loaded data vintage
    ingestion_run: Ingestion audit trail

Database Schema:
    All models inherit from the Base declarative class. Types are portable so
    the test suite can run the same models against SQLite; JSONB is used on
    PostgreSQL through a type variant.

Usage:
    from models import Occupation, Metro, SalaryFact, DataMetadata
    from models.base import IngestionStatus

Relationships:
    - Occupation -> SalaryFact (one-to-many, cascade delete)
    - Metro -> SalaryFact (one-to-many, cascade delete)
"""

from models.base import Base, IngestionStatus, OccupationGroup
from models.occupation import Occupation
from models.metro import Metro
from models.salary import SalaryFact
from models.metadata import DataMetadata, METADATA_ROW_ID
from models.ingestion_run import IngestionRun

__all__ = [
    "Base",
    "IngestionStatus",
    "OccupationGroup",
    "Occupation",
    "Metro",
    "SalaryFact",
    "DataMetadata",
    "METADATA_ROW_ID",
    "IngestionRun",
]
