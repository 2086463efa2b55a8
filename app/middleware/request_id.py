"""
TravelPlaces Backend — Request ID Middleware
==============================================

What:  Assigns an ID to each incoming request and echoes it on the response.
How:   Reads X-Request-ID (or generates a short UUID), stores it in a
       ContextVar and request.state, returns it in the X-Request-ID header.
Who:   Applied to every request via Starlette middleware.
When:  Before request logging, so every log line of a request can carry it.

Consumers:
    - RequestLoggingMiddleware and the exception handlers (log correlation)
    - DatasetMaterializer, which embeds a filesystem-safe form of the ID in
      the per-request local dataset path
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local storage for the current request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_MAX_CLIENT_ID_LENGTH = 64
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def new_request_id() -> str:
    """Short random ID (8 hex chars) for requests that arrive without one."""
    return uuid.uuid4().hex[:8]


def safe_request_id(rid: str, max_length: int = 16) -> str:
    """Strip everything but [A-Za-z0-9_-] so the ID can be used in file names."""
    return _UNSAFE_CHARS.sub("", rid)[:max_length]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header when present (truncated)
        2. Otherwise generate a new short UUID
        3. Store it in request_id_var and request.state.request_id
        4. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")[:_MAX_CLIENT_ID_LENGTH] or new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
