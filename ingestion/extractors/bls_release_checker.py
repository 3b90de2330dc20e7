"""
BLS OEWS release checker.

Fetches the OEWS tables page, finds the most recent "May YYYY" data period
and its oesmYYma.zip download link, and compares it with the period that
is currently loaded.
"""

import asyncio
import re
import httpx
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from ingestion.metadata_store import get_data_metadata, period_year, update_last_checked
from schemas.api import ReleaseCheckResult, ReleaseInfo
from core.config import settings
from core.exceptions import (
    NetworkError,
    ReleaseCheckError,
    ResourceNotFoundError,
)
import logging

logger = logging.getLogger(__name__)

DATA_PERIOD_PATTERN = re.compile(r"May\s+(\d{4})", re.IGNORECASE)
DOWNLOAD_URL_PATTERN = re.compile(r"oesm(\d{2})ma\.zip", re.IGNORECASE)
DOWNLOAD_URL_TEMPLATE = "https://www.bls.gov/oes/special.requests/oesm{yy}ma.zip"


def expand_two_digit_year(yy: int) -> int:
    return 1900 + yy if yy >= 90 else 2000 + yy


def parse_release_page(html: str) -> Optional[ReleaseInfo]:
    """
    Extract the latest release from the OEWS tables page.

    Returns None when the page mentions no data period.
    """
    years = {int(m.group(1)) for m in DATA_PERIOD_PATTERN.finditer(html)}
    if not years:
        return None

    latest_year = max(years)

    download_years = {
        expand_two_digit_year(int(m.group(1))): m.group(1)
        for m in DOWNLOAD_URL_PATTERN.finditer(html)
    }
    yy = download_years.get(latest_year, f"{latest_year % 100:02d}")

    return ReleaseInfo(
        period=f"May {latest_year}",
        year=latest_year,
        download_url=DOWNLOAD_URL_TEMPLATE.format(yy=yy),
    )


def compare_periods(current: str, latest: str) -> int:
    """Positive when latest is newer than current"""
    return period_year(latest) - period_year(current)


class BLSReleaseChecker:
    """
    Check the BLS site for a newer OEWS release.

    Features:
    - Retry with exponential backoff on timeouts, network errors and 5xx
    - last_checked_at is touched whether or not the fetch succeeds
    """

    def __init__(
        self,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url or settings.BLS_OEWS_URL
        self.user_agent = user_agent or settings.BLS_USER_AGENT
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport

    async def _get_with_retry(self, client: httpx.AsyncClient) -> httpx.Response:
        """
        GET the release page.

        Raises:
            ResourceNotFoundError: HTTP 404
            NetworkError: timeouts, network errors or 5xx after max retries
            ReleaseCheckError: any other non-200 response
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            delay = self.retry_delay * (2 ** attempt)

            try:
                response = await client.get(self.url)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if not last_attempt:
                    logger.warning(f"Request to {self.url} failed ({type(e).__name__}). Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Request failed after {self.max_retries} retries",
                    context={"url": self.url, "retry_count": attempt + 1},
                    original_exception=e,
                    max_retries=self.max_retries,
                    retry_delay=self.retry_delay
                )

            if response.status_code == 404:
                raise ResourceNotFoundError(
                    f"Release page not found: {self.url}",
                    context={"url": self.url, "status_code": 404}
                )

            if response.status_code >= 500:
                if not last_attempt:
                    logger.warning(
                        f"Server error {response.status_code}. "
                        f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Server error after {self.max_retries} retries",
                    context={
                        "url": self.url,
                        "status_code": response.status_code,
                        "retry_count": attempt + 1,
                    },
                    max_retries=self.max_retries,
                    retry_delay=self.retry_delay
                )

            if response.status_code != 200:
                raise ReleaseCheckError(
                    f"Failed to fetch BLS page: {response.status_code}",
                    context={"url": self.url, "status_code": response.status_code}
                )

            return response

        raise ReleaseCheckError("Max retries exceeded", context={"url": self.url})

    async def fetch_latest_release(self) -> ReleaseInfo:
        """Fetch and parse the OEWS tables page"""
        headers = {"User-Agent": self.user_agent}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
            follow_redirects=True
        ) as client:
            response = await self._get_with_retry(client)

        release = parse_release_page(response.text)
        if release is None:
            raise ReleaseCheckError(
                "No data periods found on BLS page",
                context={"url": self.url, "status_code": response.status_code}
            )

        logger.info(f"Latest BLS period: {release.period}")
        return release

    async def _touch_last_checked(self, session: AsyncSession) -> bool:
        """
        Record the check time.

        Runs from a finally block, so a database error here is logged
        instead of replacing the fetch result or the fetch error.
        """
        try:
            return await update_last_checked(session)
        except SQLAlchemyError as e:
            logger.error(f"Could not record last_checked_at: {e}")
            return False

    async def check(self, session_factory: async_sessionmaker) -> ReleaseCheckResult:
        """
        Compare the latest BLS release with the loaded data period.

        Raises:
            ReleaseCheckError: the BLS page could not be fetched or parsed
        """
        async with session_factory() as session:
            metadata = await get_data_metadata(session)
            logger.info(f"Current data period: {metadata.data_period}")

            try:
                release = await self.fetch_latest_release()
            finally:
                await self._touch_last_checked(session)

        has_update = compare_periods(metadata.data_period, release.period) > 0

        if has_update:
            logger.info(f"New data available: {release.period} ({release.download_url})")
        else:
            logger.info("Data is up to date")

        return ReleaseCheckResult(
            has_update=has_update,
            current_period=metadata.data_period,
            latest_period=release.period,
            download_url=release.download_url,
        )
