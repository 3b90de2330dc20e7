# ============================================================================
# File: api/middleware.py
# ============================================================================

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Crawlers hit these constantly; logged at DEBUG only
QUIET_PREFIXES = ("/health", "/sitemap", "/robots.txt")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request context for page renderers and crawlers.

    - request_id (reused from an upstream X-Request-ID when present)
    - X-API-Latency-ms response header
    - one access log line per request
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        start_time = time.perf_counter()

        request.state.request_id = request_id

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        level = logging.DEBUG if request.url.path.startswith(QUIET_PREFIXES) else logging.INFO
        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)"
        )

        return response
