"""HTTP caching headers for the JSON API.

Successful GETs carry Cache-Control and an ETag derived from the body, and a
matching If-None-Match short-circuits to 304. Successful mutations list the
client query keys to invalidate in ``X-Cache-Invalidate``.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from scoreboard.services import cache_policy

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
VARY = "Accept, Authorization, Cookie"


class CacheHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        endpoint = cache_policy.endpoint_for_path(path)
        response = await call_next(request)

        if request.method in MUTATING_METHODS:
            keys = cache_policy.invalidated_keys(endpoint)
            if keys and response.status_code < 400:
                response.headers["X-Cache-Invalidate"] = ", ".join(keys)
            return response

        if request.method != "GET" or response.status_code != 200:
            return response

        cache_control = cache_policy.cache_control(endpoint, self.enabled)
        if not self.enabled or endpoint in cache_policy.UNCACHEABLE_ENDPOINTS:
            response.headers["Cache-Control"] = cache_control
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        etag = cache_policy.etag_for(body)
        headers = dict(response.headers)
        headers.pop("content-length", None)
        headers["Cache-Control"] = cache_control
        headers["ETag"] = etag
        headers["Vary"] = VARY

        if request.headers.get("if-none-match") == etag:
            logger.debug("Not modified: %s", path)
            headers.pop("content-type", None)
            return Response(status_code=304, headers=headers)

        return Response(
            content=body,
            status_code=response.status_code,
            headers=headers,
        )
