"""
Tadoku Backend — Request Logging Middleware
============================================

What:  One access log line per request: method, path, status, duration,
       request ID, client IP and the caller's X-User-ID.
Who:   Logger "tadoku.access".

Level by status:
    5xx → ERROR, 4xx → WARNING, otherwise INFO.
    A 429 from the daily generation limit is therefore a WARNING, never an
    ERROR. /health is not logged.

Request and response bodies are never logged (stories and prompts are user
content).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tadoku.middleware.request_id import request_id_var

logger = logging.getLogger("tadoku.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        user_id = request.headers.get("X-User-ID", "-")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("") or getattr(request.state, "request_id", "")

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
