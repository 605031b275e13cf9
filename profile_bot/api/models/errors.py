"""Error response models."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Validation failure body (400)."""

    error: str


class RateLimitErrorResponse(BaseModel):
    """Rate limit denial body (429)."""

    error: str
    retryAfter: int


class ServerErrorResponse(BaseModel):
    """Unhandled failure body (500); ``message`` carries the fallback reply."""

    error: str
    message: str


def server_error(message: str, fallback: str) -> ServerErrorResponse:
    """Create server error."""
    return ServerErrorResponse(error=message, message=fallback)
