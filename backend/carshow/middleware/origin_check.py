"""Middleware rejecting cross-site state-changing requests."""
from __future__ import annotations

import logging
from urllib.parse import urlsplit

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class OriginCheckMiddleware(BaseHTTPMiddleware):
    """Refuse unsafe requests whose ``Origin`` is neither this host nor trusted.

    Requests without an ``Origin`` header pass; the SameSite session cookie
    already keeps it off cross-site form posts.
    """

    def __init__(self, app, trusted_origins: list[str] | None = None):
        super().__init__(app)
        self.trusted_origins = {origin.rstrip("/") for origin in trusted_origins or []}

    def _is_trusted(self, request: Request, origin: str) -> bool:
        if origin.rstrip("/") in self.trusted_origins:
            return True
        host = request.headers.get("X-Forwarded-Host", request.headers.get("Host", ""))
        return bool(host) and urlsplit(origin).netloc == host

    async def dispatch(self, request: Request, call_next):
        if request.method in SAFE_METHODS:
            return await call_next(request)

        origin = request.headers.get("Origin")
        if origin and not self._is_trusted(request, origin):
            logger.warning("Blocked %s %s from origin %s", request.method, request.url.path, origin)
            return JSONResponse({"detail": "Cross-origin request blocked"}, status_code=403)

        return await call_next(request)
