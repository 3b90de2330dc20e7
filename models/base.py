from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class IngestionStatus(str, enum.Enum):
    """Ingestion run status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class OccupationGroup(str, enum.Enum):
    """BLS occupation group levels"""
    TOTAL = "total"
    MAJOR = "major"
    MINOR = "minor"
    BROAD = "broad"
    DETAILED = "detailed"
