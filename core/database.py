"""
Database engine and session factories with SQLAlchemy async.

Engines are built explicitly and owned by the caller (API lifespan, CLI
scripts, tests). Nothing here holds a process-wide connection pool.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from core.config import Settings, settings as default_settings
import logging

logger = logging.getLogger(__name__)


def create_engine_from_settings(
    config: Optional[Settings] = None,
    database_url: Optional[str] = None,
) -> AsyncEngine:
    """
    Create an async engine with a deliberately small pool.

    SQLite URLs (used by the test suite) get a NullPool since they have no
    server-side connection budget to protect.
    """
    config = config or default_settings
    url = database_url or config.DATABASE_URL

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, poolclass=NullPool, future=True)

    engine = create_async_engine(
        url,
        echo=config.ENVIRONMENT == "development" and config.LOG_LEVEL.upper() == "DEBUG",
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=config.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
        future=True,
    )
    logger.debug(f"Created database engine (pool_size={config.DB_POOL_SIZE})")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create session factory bound to the given engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

