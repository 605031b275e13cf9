"""Chat request orchestration.

Composes validation, rate limiting, retrieval and generation into a single
request/response cycle. Each request walks an explicit lifecycle:

    RECEIVED -> VALIDATED -> RATE_CHECKED -> RETRIEVED -> GENERATED -> RESPONDED

with ERROR_RESPONDED reachable from any state. Generation failures do not
leave the happy path; the reply degrades to a fixed fallback text.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from profile_bot.core.errors import GenerationError, RateLimitError, ValidationError
from profile_bot.core.llm_connector import FALLBACK_RESPONSE, ResponseGenerator
from profile_bot.core.retrieval import DEFAULT_TOP_N, format_entries_for_context, rank
from profile_bot.lib.rate_limiter import RateLimiter
from profile_bot.storage.knowledge_store import KnowledgeBase

logger = logging.getLogger(__name__)

NO_MATCH_RESPONSE = (
    "I don't have information about that in my knowledge base. "
    "Is there something else I can help you with?"
)

DEFAULT_SUGGESTIONS = [
    "What can you tell me about their background?",
    "What services are available?",
    "How can I get in touch?",
]

INVALID_MESSAGE_ERROR = "Please provide a message."
SERVER_ERROR = "Internal server error. Please try again."


class RequestState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RATE_CHECKED = "rate_checked"
    RETRIEVED = "retrieved"
    GENERATED = "generated"
    RESPONDED = "responded"
    ERROR_RESPONDED = "error_responded"


@dataclass(frozen=True)
class RequestContext:
    """Per-request facts derived from the incoming HTTP request."""

    session_id: str
    ip_address: str
    origin: Optional[str] = None


@dataclass
class ChatSettings:
    """Request-time settings for the chat pipeline."""

    provider: str = "openai"
    model: Optional[str] = None
    api_key_resolver: Callable[[str], Optional[str]] = lambda provider: None
    top_n: int = DEFAULT_TOP_N
    suggestions: List[str] = field(default_factory=lambda: list(DEFAULT_SUGGESTIONS))
    no_match_response: str = NO_MATCH_RESPONSE
    fallback_response: str = FALLBACK_RESPONSE


@dataclass
class ChatOutcome:
    """Normalized result of one chat request."""

    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    state: RequestState = RequestState.RESPONDED


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class ChatOrchestrator:
    """Stateless entry point for chat requests."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        rate_limiter: RateLimiter,
        generator: ResponseGenerator,
        settings: Optional[ChatSettings] = None,
    ):
        """Initialize orchestrator.

        Args:
            knowledge_base: Read-only corpus shared by all requests
            rate_limiter: Session/IP rate limiter
            generator: Provider-agnostic response generator
            settings: Provider selection and canned texts
        """
        self.knowledge_base = knowledge_base
        self.rate_limiter = rate_limiter
        self.generator = generator
        self.settings = settings or ChatSettings()

    async def handle(self, raw_body: bytes, context: RequestContext) -> ChatOutcome:
        """Run one chat request through the full lifecycle.

        Args:
            raw_body: Undecoded request body
            context: Session, IP and origin of the caller

        Returns:
            ChatOutcome with status, JSON body and extra headers
        """
        state = RequestState.RECEIVED

        try:
            message = self._validate(raw_body)
            state = RequestState.VALIDATED

            await self._check_rate_limit(context)
            state = RequestState.RATE_CHECKED

            retrieval_start = time.time()
            entries = rank(message, self.knowledge_base.entries, self.settings.top_n)
            retrieval_ms = _elapsed_ms(retrieval_start)
            state = RequestState.RETRIEVED

            if not entries:
                logger.info(
                    f"No knowledge entries matched for session {context.session_id}",
                    extra={
                        "extra_fields": {
                            "session_id": context.session_id,
                            "state": state.value,
                            "entries_found": 0,
                            "retrieval_ms": retrieval_ms,
                        }
                    },
                )
                return ChatOutcome(
                    status_code=200,
                    body={
                        "message": self.settings.no_match_response,
                        "suggestions": list(self.settings.suggestions),
                        "metadata": {"retrievalTime": retrieval_ms, "entriesFound": 0},
                    },
                    state=RequestState.RESPONDED,
                )

            generation_start = time.time()
            reply = await self._generate(message, format_entries_for_context(entries))
            generation_ms = _elapsed_ms(generation_start)
            state = RequestState.GENERATED

            topics = list(dict.fromkeys(entry.topic for entry in entries))
            logger.info(
                f"Answered from {len(entries)} entries (topics: {topics}) "
                f"in {retrieval_ms + generation_ms}ms",
                extra={
                    "extra_fields": {
                        "session_id": context.session_id,
                        "state": state.value,
                        "entries_found": len(entries),
                        "topics": topics,
                        "retrieval_ms": retrieval_ms,
                        "generation_ms": generation_ms,
                    }
                },
            )
            return ChatOutcome(
                status_code=200,
                body={
                    "message": reply,
                    "suggestions": list(self.settings.suggestions),
                    "metadata": {
                        "retrievalTime": retrieval_ms,
                        "aiGenerationTime": generation_ms,
                        "totalTime": retrieval_ms + generation_ms,
                        "entriesFound": len(entries),
                        "topics": topics,
                    },
                },
                state=RequestState.RESPONDED,
            )

        except ValidationError as e:
            logger.info(f"Rejected chat request: {e}")
            return ChatOutcome(
                status_code=400,
                body={"error": str(e)},
                state=RequestState.ERROR_RESPONDED,
            )

        except RateLimitError as e:
            return ChatOutcome(
                status_code=429,
                body={"error": e.reason, "retryAfter": e.retry_after},
                headers={"Retry-After": str(e.retry_after)},
                state=RequestState.ERROR_RESPONDED,
            )

        except Exception as e:
            logger.error(
                f"Chat request failed in state {state.value}: {e}",
                exc_info=True,
                extra={"extra_fields": {"session_id": context.session_id, "state": state.value}},
            )
            return ChatOutcome(
                status_code=500,
                body={"error": SERVER_ERROR, "message": self.settings.fallback_response},
                state=RequestState.ERROR_RESPONDED,
            )

    def _validate(self, raw_body: bytes) -> str:
        # Undecodable bodies are not validation failures; they surface as 500
        body = json.loads(raw_body)

        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, str) or not message.strip():
            raise ValidationError(INVALID_MESSAGE_ERROR)

        return message

    async def _check_rate_limit(self, context: RequestContext) -> None:
        decision = await self.rate_limiter.check_and_record(context.session_id, context.ip_address)
        if not decision.allowed:
            raise RateLimitError(decision.reason, decision.retry_after)

    async def _generate(self, message: str, rag_context: str) -> str:
        provider = self.settings.provider
        try:
            return await self.generator.generate(
                message,
                rag_context,
                self.settings.api_key_resolver(provider),
                provider,
                model=self.settings.model,
            )
        except GenerationError as e:
            logger.error(f"AI generation failed ({e.provider}, status={e.status_code}): {e}")
            return self.settings.fallback_response
