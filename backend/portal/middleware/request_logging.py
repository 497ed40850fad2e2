"""Request logging middleware."""

import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from portal.core.security import PRINCIPAL_ID_HEADER

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one structured event per API request.

    Each request gets a request_id bound into the structlog context, so every
    event emitted while handling it (including audit events) carries the id.

    Logged fields:
    - method, path, status_code, duration_ms
    - origin (cross-origin calls) and caller principal id
    """

    def __init__(self, app: ASGIApp, log_all_requests: bool = True):
        """
        Initialize request logging middleware.

        Args:
            app: ASGI application
            log_all_requests: If False, only failures and cross-origin requests are logged
        """
        super().__init__(app)
        self.log_all_requests = log_all_requests

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        origin = request.headers.get("Origin")
        started = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 1)

        log_context = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "origin": origin or "same-origin",
            "principal_id": request.headers.get(PRINCIPAL_ID_HEADER, "unknown"),
        }

        if response.status_code >= 500:
            logger.error("request.failed", **log_context)
        elif response.status_code >= 400:
            logger.warning("request.rejected", **log_context)
        elif origin or self.log_all_requests:
            logger.info("request.completed", **log_context)

        response.headers["X-Request-ID"] = request_id
        return response
