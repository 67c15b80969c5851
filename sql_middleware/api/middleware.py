"""
Request logging middleware for the FastAPI application.

Logs method, path, status and timing of every request and tags it with a
correlation ID (taken from ``X-Correlation-ID`` or generated).
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sql_middleware.utils.logging import get_logger, set_correlation_id

log = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for request/response logging.

    Health probes are passed through without a log line.
    """

    EXCLUDE_PATHS: tuple[str, ...] = ("/api/health", "/favicon.ico")

    def _should_log(self, path: str) -> bool:
        return not any(path.startswith(exclude) for exclude in self.EXCLUDE_PATHS)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())[:8]
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        if not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        start_time = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        log.info(f"--> {request.method} {request.url.path} from {client}")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            f"<-- {request.method} {request.url.path} "
            f"{response.status_code} ({duration_ms:.1f}ms)",
            extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 1)},
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


__all__ = ["CORRELATION_HEADER", "RequestLoggingMiddleware"]
