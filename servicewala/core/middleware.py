"""
core/middleware.py

HTTP middlewares:
- LoggingMiddleware logs every request with its response status and duration
- SecurityHeadersMiddleware adds common security headers to responses
"""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("servicewala.requests")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        # Log the response depending on status
        log_fn = logger.warning if response.status_code >= 400 else logger.info
        log_fn(
            f"[REQUEST] {request.method} {request.url.path} - "
            f"Status {response.status_code} - {elapsed_ms:.1f} ms"
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add common security headers to responses.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response
