"""
Core utilities and configuration for the SalaryScout backend.

This package provides foundational components used by the ingestion
pipeline, the API and the CLI scripts:

Modules:
    config: Application configuration and environment variable management
    database: Engine and session factory construction
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    retry: Bounded linear-backoff retry for read-only database paths

Usage:
    from core.config import settings
    from core.database import create_engine_from_settings, create_session_factory
    from core.exceptions import SlugCollisionError, NetworkError
    from core.logging import setup_logging
    from core.retry import retry_read

Example:
    setup_logging()

    engine = create_engine_from_settings()
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        # Perform database operations
        pass
    await engine.dispose()
"""

__all__ = [
    "settings",
    "create_engine_from_settings",
    "create_session_factory",
    "setup_logging",
    "retry_read",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "SpreadsheetExtractionError",
    "ReleaseCheckError",
    "NetworkError",
    "ResourceNotFoundError",
    "TransformationError",
    "NormalizationError",
    "DataValidationError",
    "SchemaValidationError",
    "SlugCollisionError",
    "LoadError",
    "UpsertError",
    "DatabaseError",
    "DatabaseConnectionError",
    "DeadlockError",
    "RetryableError",
]
