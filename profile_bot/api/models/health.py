"""Health check models."""

from typing import Literal

from pydantic import BaseModel


class HealthStatus(BaseModel):
    """Service health and corpus summary."""

    status: Literal["ok"] = "ok"
    entries: int
    types: dict[str, int]
    provider: str
    model: str
