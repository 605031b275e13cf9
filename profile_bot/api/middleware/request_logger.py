"""Request logging middleware for latency tracking."""

import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Log request/response status and timing."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request details and timing.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response object
        """
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID", f"req-{int(start_time * 1000)}")

        logger.info(
            f"→ {request.method} {request.url.path} "
            f"[{request_id}] from {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            logger.error(
                f"✗ {request.method} {request.url.path} "
                f"[{request_id}] ERROR in {latency_ms:.0f}ms: {str(e)}",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "path": request.url.path,
                        "latency_ms": round(latency_ms, 2),
                    }
                },
            )
            raise

        latency_ms = (time.time() - start_time) * 1000

        retry_after = response.headers.get("Retry-After", "")
        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round(latency_ms, 2),
        }
        if retry_after:
            fields["retry_after"] = int(retry_after)

        logger.info(
            f"← {request.method} {request.url.path} "
            f"[{request_id}] {response.status_code} "
            f"in {latency_ms:.0f}ms"
            + (f" retry_after={retry_after}s" if retry_after else ""),
            extra={"extra_fields": fields},
        )

        response.headers["X-Response-Time"] = f"{latency_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id

        return response
