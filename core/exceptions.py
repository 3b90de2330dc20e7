"""
Exception hierarchy for salary ingestion, release checks and read paths.

Every error carries a context dict that ends up in logs and in the
ingestion_runs.error_details column, so keep context values JSON-friendly.

    ETLException
    ├── ExtractionError
    │   ├── SpreadsheetExtractionError
    │   ├── ReleaseCheckError
    │   │   └── NetworkError*
    │   └── ResourceNotFoundError
    ├── TransformationError
    │   ├── NormalizationError
    │   └── DataValidationError
    │       ├── SchemaValidationError
    │       └── SlugCollisionError
    └── LoadError
        ├── UpsertError
        └── DatabaseError
            ├── DatabaseConnectionError*
            └── DeadlockError*

    * also RetryableError: transient, safe to try again
"""

from typing import Optional, Dict, Any
from datetime import datetime


class ETLException(Exception):
    """
    Base exception for pipeline and data access errors.

    Attributes:
        message: Human-readable error message
        context: Structured details (file, table, codes, counts)
        original_exception: Underlying driver / HTTP / parser error, if any
    """

    retryable = False

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = dict(context or {})
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        super().__init__(message)
        if original_exception is not None:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.context:
            parts.append(", ".join(f"{k}={v}" for k, v in self.context.items()))
        if self.original_exception is not None:
            parts.append(f"caused by {type(self.original_exception).__name__}: {self.original_exception}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form stored on failed ingestion runs"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception is not None else None
        }


class RetryableError(ETLException):
    """
    Transient failure: timeouts, dropped connections, 5xx responses,
    too_many_connections, serialization failures and deadlocks.

    max_retries / retry_delay record the policy that was exhausted.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


# ============================================================================
# Extraction
# ============================================================================

class ExtractionError(ETLException):
    """Input could not be obtained"""


class SpreadsheetExtractionError(ExtractionError):
    """The BLS workbook / CSV could not be parsed (context: file_path, sheet_name)"""


class ReleaseCheckError(ExtractionError):
    """The BLS OEWS page could not be fetched or held no data period (context: url, status_code)"""


class NetworkError(RetryableError, ReleaseCheckError):
    """Timeouts, connection errors and 5xx responses after the last retry"""


class ResourceNotFoundError(ExtractionError):
    """Input file missing or remote page returned 404"""


# ============================================================================
# Transformation
# ============================================================================

class TransformationError(ETLException):
    """Rows or entities could not be shaped for loading"""


class NormalizationError(TransformationError):
    """
    A row with both source codes failed validation.

    Context: row_index, occ_code, area_code, field_errors
    """


class DataValidationError(TransformationError):
    """Input as a whole violates a structural rule"""


class SchemaValidationError(DataValidationError):
    """Header matches no known column convention"""


class SlugCollisionError(DataValidationError):
    """
    Two distinct source codes would publish under the same slug.

    Context: entity ("occupation" or "metro"), collisions {slug: [codes]}
    """


# ============================================================================
# Load / database
# ============================================================================

class LoadError(ETLException):
    """The load transaction failed and was rolled back"""


class UpsertError(LoadError):
    """An upsert batch failed (context: table_name, conflict_fields, batch_index)"""


class DatabaseError(LoadError):
    """Database access failed (context: operation, attempts, error_code)"""


class DatabaseConnectionError(RetryableError, DatabaseError):
    """Connection refused / dropped / exhausted after the last retry"""


class DeadlockError(RetryableError, DatabaseError):
    """Serialization failure or deadlock after the last retry"""
