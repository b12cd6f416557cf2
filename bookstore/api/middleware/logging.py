"""
Request Logging Middleware
One log line per request with method, path, status and duration.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an ID and logs its outcome.

    The ID comes from the ``X-Request-ID`` header or is generated; it is
    echoed back together with ``X-Response-Time``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"[{request_id}] {route} raised after {elapsed_ms:.2f}ms: {e}", exc_info=True)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"[{request_id}] {route} -> {response.status_code} ({elapsed_ms:.2f}ms)")

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        return response
