"""Exception types raised along the chat request pipeline."""

from typing import Optional


class ProfileBotError(Exception):
    """Base class for application errors."""


class ValidationError(ProfileBotError):
    """Malformed or missing request input (surfaced as 400)."""


class RateLimitError(ProfileBotError):
    """A rate window is exhausted (surfaced as 429)."""

    def __init__(self, reason: str, retry_after: int):
        super().__init__(reason)
        self.reason = reason
        self.retry_after = retry_after


class GenerationError(ProfileBotError):
    """The generation provider could not produce a reply.

    Recovered locally by the orchestrator, never surfaced as an HTTP error.
    """

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{provider} API error: {message}")
        self.provider = provider
        self.status_code = status_code


class KnowledgeBaseError(ProfileBotError):
    """The knowledge corpus could not be loaded."""
