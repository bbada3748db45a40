"""
Performance Monitoring Middleware for OneShot
Tracks request duration and tags every log line with a correlation ID.
"""

import time
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from logging_config import set_correlation_id

logger = logging.getLogger(__name__)

# Frame requests arrive continuously; anything slower than this cannot keep up
SLOW_REQUEST_MS = 100.0


class PerformanceMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds:
    - Request timing
    - Correlation IDs for request tracing
    - Performance logging
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time-Ms"] = f"{duration_ms:.2f}"

        # Per-frame traffic stays at DEBUG unless it is slow
        slow = duration_ms > SLOW_REQUEST_MS
        if request.url.path.endswith("/frames") and not slow:
            log_level = logging.DEBUG
        elif request.url.path.startswith("/health"):
            log_level = logging.DEBUG
        else:
            log_level = logging.WARNING if slow else logging.INFO

        logger.log(
            log_level,
            f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.2f}ms)",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "slow": slow
            }
        )

        return response
