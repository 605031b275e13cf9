"""Provider-agnostic response generation.

The call path is the same for every provider: build a fixed three-part
message list, hand it to the selected profile's payload builder, POST it, and
let the profile extract the reply text. Provider differences never leak past
the profile registry.
"""

import logging
from typing import Dict, List, Optional

import httpx

from profile_bot.core.errors import GenerationError
from profile_bot.core.providers.anthropic_provider import ANTHROPIC_PROFILE
from profile_bot.core.providers.base import Message, ProviderProfile
from profile_bot.core.providers.openai_provider import OPENAI_PROFILE

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, ProviderProfile] = {
    OPENAI_PROFILE.name: OPENAI_PROFILE,
    ANTHROPIC_PROFILE.name: ANTHROPIC_PROFILE,
}

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant for {name}, helping visitors learn about their work, experience, and expertise.

CRITICAL RULES:
1. ONLY answer questions using the provided knowledge base entries
2. If information isn't in the knowledge base, say "I don't have that information in my knowledge base"
3. Be professional but approachable
4. Keep responses concise (2-3 paragraphs maximum)
5. Always offer a helpful next step
6. Be honest about limitations, don't guess or make up information

TONE:
- Professional but conversational
- Direct and helpful
- No unnecessary fluff
- Action-oriented

CONVERSATION ENDINGS:
Always conclude with a helpful next step, such as:
- Suggesting they contact {name} directly
- Offering to answer another question
- Pointing them toward a specific page or resource

Remember: You represent {name}'s professional brand. Be helpful, honest, and stick to the knowledge base."""

CONTEXT_TEMPLATE = (
    "Here is the relevant information from the knowledge base:\n\n{context}\n\n"
    "Use ONLY this information to answer the user's question. "
    "If the answer isn't in these entries, say so honestly."
)

FALLBACK_RESPONSE = (
    "I'm having trouble connecting right now. Please try again in a moment, "
    "or reach out directly through the contact page."
)


def get_provider(provider_name: str) -> ProviderProfile:
    """Look up a provider profile by name.

    Raises:
        GenerationError: If the provider is not registered
    """
    profile = PROVIDERS.get((provider_name or "").lower())
    if profile is None:
        supported = ", ".join(sorted(PROVIDERS))
        raise GenerationError(
            provider_name or "unknown",
            f'Unknown AI provider "{provider_name}". Supported: {supported}',
        )
    return profile


def build_messages(user_message: str, rag_context: str, system_prompt: str) -> List[Message]:
    """Assemble the rules prompt, the grounding context and the question."""
    return [
        Message(role="system", content=system_prompt),
        Message(role="system", content=CONTEXT_TEMPLATE.format(context=rag_context)),
        Message(role="user", content=user_message),
    ]


class ResponseGenerator:
    """Generate grounded replies through the configured provider."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        persona_name: str = "the site owner",
    ):
        """Initialize generator.

        Args:
            client: Shared HTTP client (one is created if omitted)
            timeout: Per-call timeout in seconds; no retry is attempted
            temperature: Sampling temperature
            max_tokens: Maximum reply length
            persona_name: Name of the person the assistant speaks about
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = SYSTEM_PROMPT_TEMPLATE.format(name=persona_name)

    async def generate(
        self,
        user_message: str,
        rag_context: str,
        api_key: Optional[str],
        provider_name: str,
        model: Optional[str] = None,
    ) -> str:
        """Generate a reply grounded in ``rag_context``.

        Args:
            user_message: The visitor's question
            rag_context: Formatted knowledge entries
            api_key: Key for the selected provider
            provider_name: Registered provider name ("openai" or "anthropic")
            model: Model override (provider default if omitted)

        Returns:
            Reply text

        Raises:
            GenerationError: On unknown provider, missing key, network
                failure, timeout, non-2xx status or malformed response
        """
        profile = get_provider(provider_name)

        if not api_key:
            raise GenerationError(profile.name, "API key not configured")

        model = model or profile.default_model
        messages = build_messages(user_message, rag_context, self.system_prompt)
        payload = profile.build_payload(messages, model, self.temperature, self.max_tokens)

        logger.info(f"Generating response: provider={profile.name}, model={model}")

        try:
            response = await self.client.post(
                profile.api_url,
                json=payload,
                headers=profile.build_headers(api_key),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"{profile.name} request timed out after {self.timeout}s")
            raise GenerationError(profile.name, f"request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"{profile.name} request failed: {e}")
            raise GenerationError(profile.name, f"request failed: {e}") from e

        if not response.is_success:
            logger.error(f"{profile.name} HTTP error: {response.status_code} - {response.text[:500]}")
            raise GenerationError(
                profile.name,
                f"{response.status_code} - {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError(
                profile.name, "malformed JSON response", status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise GenerationError(
                profile.name, "unexpected response shape", status_code=response.status_code
            )

        try:
            return profile.extract_response(data)
        except GenerationError as e:
            e.status_code = response.status_code
            raise
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise GenerationError(
                profile.name, f"malformed response: {e}", status_code=response.status_code
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
