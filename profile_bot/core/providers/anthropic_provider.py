"""Anthropic messages API provider profile.

The messages API takes system instructions in a separate top-level field,
and authenticates with an ``x-api-key`` header plus a version header instead
of a bearer token.
"""

from typing import Any, Dict, List

from profile_bot.core.errors import GenerationError
from profile_bot.core.providers.base import Message, ProviderProfile

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_DEFAULT_MODEL = "claude-haiku-4-5-20251001"
ANTHROPIC_VERSION = "2023-06-01"


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
    }


def build_payload(
    messages: List[Message], model: str, temperature: float, max_tokens: int
) -> Dict[str, Any]:
    """Merge all system messages into ``system``; pass the rest through."""
    system_text = "\n\n".join(msg.content for msg in messages if msg.role == "system")
    conversation = [msg.to_dict() for msg in messages if msg.role != "system"]

    return {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "system": system_text,
        "messages": conversation,
    }


def extract_response(data: Dict[str, Any]) -> str:
    """Pull the reply text out of a messages API response.

    Raises:
        GenerationError: If the response carries no content blocks
    """
    blocks = data.get("content") or []
    if not blocks:
        raise GenerationError("anthropic", "No response from Anthropic API")

    text = blocks[0].get("text")
    if not text:
        raise GenerationError("anthropic", "No response from Anthropic API")

    return text.strip()


ANTHROPIC_PROFILE = ProviderProfile(
    name="anthropic",
    api_url=ANTHROPIC_API_URL,
    default_model=ANTHROPIC_DEFAULT_MODEL,
    build_headers=build_headers,
    build_payload=build_payload,
    extract_response=extract_response,
)
