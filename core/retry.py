"""
Bounded retry with fixed linear backoff for read-only database paths.

The ingestion transaction never goes through here: a failure inside it
aborts and rolls back the whole run instead.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import DatabaseConnectionError, DeadlockError, RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# too_many_connections, serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"53300", "40001", "40P01"}
UNDEFINED_TABLE_SQLSTATE = "42P01"


def get_sqlstate(exc: BaseException) -> Optional[str]:
    """Extract the SQLSTATE code from a wrapped DBAPI error, if any"""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None), exc):
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "sqlstate", None)
        if code:
            return str(code)
    return None


def is_transient_error(exc: BaseException) -> bool:
    """Whether a database error is worth retrying"""
    if isinstance(exc, RetryableError):
        return True
    if not isinstance(exc, DBAPIError) or is_missing_table_error(exc):
        return False
    if get_sqlstate(exc) in TRANSIENT_SQLSTATES:
        return True
    # Dropped / refused connections surface without a SQLSTATE
    return bool(exc.connection_invalidated) or (
        isinstance(exc, (OperationalError, InterfaceError)) and get_sqlstate(exc) is None
    )


def is_missing_table_error(exc: BaseException) -> bool:
    """Whether an error means the queried table does not exist yet"""
    if get_sqlstate(exc) == UNDEFINED_TABLE_SQLSTATE:
        return True
    return "no such table" in str(exc).lower()


async def retry_read(
    operation: Callable[[], Awaitable[T]],
    session: Optional[AsyncSession] = None,
    max_retries: Optional[int] = None,
    retry_delay: Optional[float] = None,
    description: str = "query",
) -> T:
    """
    Run a read-only async operation, retrying transient failures.

    Backoff is linear: attempt N waits ``retry_delay * N`` seconds.
    Non-transient errors propagate immediately. After the last attempt a
    transient error is re-raised as DatabaseConnectionError / DeadlockError.

    When the operation runs on a session, pass it: the failed transaction
    (aborted, or bound to an invalidated connection) is rolled back before
    the next attempt, otherwise the retry fails with PendingRollbackError.
    """
    attempts = max_retries if max_retries is not None else settings.MAX_RETRIES
    delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_transient_error(e):
                raise

            if attempt < attempts:
                wait = delay * attempt
                logger.warning(
                    f"Transient error during {description} "
                    f"(attempt {attempt}/{attempts}), retrying in {wait:.1f}s: {e}"
                )
                if session is not None:
                    await session.rollback()
                await asyncio.sleep(wait)
                continue

            context: Dict[str, Any] = {
                "operation": description,
                "attempts": attempts,
                "error_code": get_sqlstate(e),
            }
            if get_sqlstate(e) in {"40001", "40P01"}:
                raise DeadlockError(
                    f"{description} failed after {attempts} attempts",
                    context=context,
                    original_exception=e,
                    max_retries=attempts,
                    retry_delay=delay,
                )
            raise DatabaseConnectionError(
                f"{description} failed after {attempts} attempts",
                context=context,
                original_exception=e,
                max_retries=attempts,
                retry_delay=delay,
            )

    raise RuntimeError("unreachable")
