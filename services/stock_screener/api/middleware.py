"""
Request logging middleware
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shared.utils.logger import get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Registra cada request: método, path, status y duración
    """

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - start) * 1000, 2)

        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms
        )
        return response
