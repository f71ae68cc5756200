"""Per-request access logging."""
from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log one line per request with the resolved username, if any."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        principal = getattr(request.state, "principal", None)
        username = principal.username if principal is not None else "anon"
        logger.info(
            "%s %s %s -> %s (%.1f ms)",
            username,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
