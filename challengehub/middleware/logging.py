"""
ChallengeHub Backend — Request Logging Middleware
===================================================

What:  One access-log line per HTTP request with status and duration.
How:   Level follows the status code: 5xx → ERROR, 4xx → WARNING,
       otherwise INFO. 409s are expected outcomes of lost claim races
       and are logged at INFO.
When:  Runs inside RequestIDMiddleware, so the request id is available.

Logged: method, path, status, duration, client IP, request id.
Not logged: request bodies, Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from challengehub.middleware.request_id import request_id_var

logger = logging.getLogger("challengehub.access")

QUIET_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status == 409:
        return logging.INFO
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        status = response.status_code
        logger.log(
            _level_for(status),
            "%s %s %d %.1fms from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "rid": request_id_var.get(""),
            },
        )
        return response
