"""OpenAI chat completions provider profile."""

from typing import Any, Dict, List

from profile_bot.core.errors import GenerationError
from profile_bot.core.providers.base import Message, ProviderProfile

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_DEFAULT_MODEL = "gpt-3.5-turbo"


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def build_payload(
    messages: List[Message], model: str, temperature: float, max_tokens: int
) -> Dict[str, Any]:
    """Build a chat completions request; system messages stay in the list."""
    return {
        "model": model,
        "messages": [msg.to_dict() for msg in messages],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "top_p": 1,
        "frequency_penalty": 0,
        "presence_penalty": 0,
    }


def extract_response(data: Dict[str, Any]) -> str:
    """Pull the reply text out of a chat completions response.

    Raises:
        GenerationError: If the response carries no choices or no content
    """
    choices = data.get("choices") or []
    if not choices:
        raise GenerationError("openai", "No response from OpenAI API")

    content = (choices[0].get("message") or {}).get("content")
    if not content:
        raise GenerationError("openai", "No response from OpenAI API")

    return content.strip()


OPENAI_PROFILE = ProviderProfile(
    name="openai",
    api_url=OPENAI_API_URL,
    default_model=OPENAI_DEFAULT_MODEL,
    build_headers=build_headers,
    build_payload=build_payload,
    extract_response=extract_response,
)
