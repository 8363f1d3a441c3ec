"""
ChallengeHub Backend — Request ID Middleware
==============================================

What:  Assigns a correlation id to each request, exposes it to loggers and
       echoes it in the `X-Request-ID` response header.
How:   Client-supplied ids are accepted if they are short and printable;
       otherwise an 8-character id is generated. The id is stored in a
       ContextVar (coroutine-local) and in `request.state`.
       `RequestIDLogFilter` copies it onto every log record so the log
       format can print `%(request_id)s`.
"""

import logging
import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _incoming_or_new(request: Request) -> str:
    candidate = request.headers.get("X-Request-ID", "")
    if _VALID_REQUEST_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex[:8]


class RequestIDLogFilter(logging.Filter):
    """Attach the current request id (or "-") to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = _incoming_or_new(request)
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
