"""
TravelPlaces Backend — Cache-Control Middleware
=================================================

Stamps every response with the configured Cache-Control value
(settings.cache_control_header, long-lived public caching by default).
Datasets are published once and replaced wholesale, so responses may be
cached by browsers and CDNs. An empty setting disables the header.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class CacheControlMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, header_value: str):
        super().__init__(app)
        self.header_value = header_value

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        if self.header_value and "cache-control" not in response.headers:
            response.headers["Cache-Control"] = self.header_value
        return response
