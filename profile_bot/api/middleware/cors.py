"""Origin allow-list CORS policy.

An allowed origin (matched by prefix) is echoed back; any other origin gets
the headers of the first allow-listed origin, which browsers reject. The
request itself still succeeds, so denial happens client-side.
"""

import logging
from typing import Callable, Sequence

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "POST, GET, OPTIONS"
ALLOWED_HEADERS = "Content-Type, X-Session-ID"
MAX_AGE_SECONDS = "86400"


def get_cors_headers(origin: str | None, allowed_origins: Sequence[str]) -> dict[str, str]:
    """Build CORS headers for a request origin.

    Args:
        origin: Value of the request's Origin header
        allowed_origins: Allow-list; the first entry is the default origin

    Returns:
        Header mapping to attach to the response
    """
    is_allowed = bool(origin) and any(origin.startswith(allowed) for allowed in allowed_origins)
    default_origin = allowed_origins[0] if allowed_origins else ""

    return {
        "Access-Control-Allow-Origin": origin if is_allowed else default_origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Max-Age": MAX_AGE_SECONDS,
    }


class CORSPolicyMiddleware(BaseHTTPMiddleware):
    """Answer preflights and attach CORS headers to every response."""

    def __init__(self, app: ASGIApp, allowed_origins: Sequence[str]):
        super().__init__(app)
        self.allowed_origins = list(allowed_origins)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        headers = get_cors_headers(request.headers.get("Origin"), self.allowed_origins)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
