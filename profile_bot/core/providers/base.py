"""Provider profile abstraction for swappable generation backends."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List


@dataclass(frozen=True)
class Message:
    """Chat message format."""
    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


PayloadBuilder = Callable[[List[Message], str, float, int], Dict[str, Any]]


@dataclass(frozen=True)
class ProviderProfile:
    """Static description of one generation provider.

    Everything that differs between providers (endpoint, auth headers,
    request and response shapes) lives here, so callers only pick a profile
    by name.
    """
    name: str
    api_url: str
    default_model: str
    build_headers: Callable[[str], Dict[str, str]]
    build_payload: PayloadBuilder
    extract_response: Callable[[Dict[str, Any]], str]
