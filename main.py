"""
FastAPI Knowledge Chat Server

Answers visitor questions about a person from a curated JSONL knowledge
corpus. Exposes a CORS-aware chat endpoint, a health check and preflight
handling; every chat request goes through rate limiting, keyword retrieval
and grounded generation.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from profile_bot.api.config import APIConfig
from profile_bot.api.handlers.chat import process_chat
from profile_bot.api.handlers.health import check_health
from profile_bot.api.middleware.cors import CORSPolicyMiddleware, get_cors_headers
from profile_bot.api.middleware.request_logger import RequestLoggerMiddleware
from profile_bot.api.models.errors import server_error
from profile_bot.core.llm_connector import ResponseGenerator
from profile_bot.core.orchestrator import SERVER_ERROR, ChatOrchestrator
from profile_bot.lib.logger import setup_logging
from profile_bot.lib.rate_limiter import RateLimiter
from profile_bot.storage.knowledge_store import KnowledgeBase, load_knowledge_base
from profile_bot.storage.kv_store import KeyValueStore, create_kv_store

logger = logging.getLogger(__name__)


def create_app(
    config: APIConfig | None = None,
    knowledge_base: KnowledgeBase | None = None,
    kv_store: KeyValueStore | None = None,
    generator: ResponseGenerator | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Build the application.

    Collaborators left as None are created from configuration at startup.

    Args:
        config: API configuration (loaded from config/api.yaml if omitted)
        knowledge_base: Preloaded corpus
        kv_store: Rate limit store
        generator: Response generator
        clock: Unix time source for rate windows
    """
    config = config or APIConfig()

    # Lifespan context manager for startup/shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load the corpus and wire the chat pipeline."""
        logger.info("Starting knowledge chat server")

        corpus = knowledge_base
        if corpus is None:
            corpus = load_knowledge_base(config.get("knowledge.path"))
        app.state.knowledge_base = corpus

        store = kv_store
        if store is None:
            store = create_kv_store(
                config.get("rate_limiting.backend", "memory"),
                config.get("rate_limiting.redis_url"),
            )

        response_generator = generator
        if response_generator is None:
            response_generator = ResponseGenerator(
                timeout=float(config.get("generation.timeout_seconds", 15.0)),
                temperature=float(config.get("generation.temperature", 0.7)),
                max_tokens=int(config.get("generation.max_tokens", 500)),
                persona_name=config.get("generation.persona_name", "the site owner"),
            )

        rate_limiter = RateLimiter(
            store,
            session_limit=int(config.get("rate_limiting.session_limit", 10)),
            ip_limit=int(config.get("rate_limiting.ip_limit", 100)),
            session_window=int(config.get("rate_limiting.session_window_seconds", 3600)),
            ip_window=int(config.get("rate_limiting.ip_window_seconds", 86400)),
            clock=clock,
        )

        app.state.orchestrator = ChatOrchestrator(
            knowledge_base=corpus,
            rate_limiter=rate_limiter,
            generator=response_generator,
            settings=config.chat_settings(),
        )

        config.check_provider()
        logger.info(
            f"Chat pipeline ready: {len(corpus)} entries, "
            f"provider={config.get_provider_name()}, model={config.get_effective_model()}"
        )

        yield

        logger.info("Shutting down knowledge chat server")
        # Only close collaborators created here
        if generator is None:
            await response_generator.aclose()
        if kv_store is None:
            await store.close()

    app = FastAPI(
        title="Profile Bot",
        description="Grounded Q&A about one person, backed by a curated knowledge base",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.config = config

    allowed_origins = config.get_allowed_origins()

    app.add_middleware(CORSPolicyMiddleware, allowed_origins=allowed_origins)
    app.add_middleware(RequestLoggerMiddleware)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Turn anything escaping a route into the generic 500 reply."""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

        body = server_error(SERVER_ERROR, config.get("chat.fallback_response"))
        return JSONResponse(
            status_code=500,
            content=body.model_dump(),
            headers=get_cors_headers(request.headers.get("Origin"), allowed_origins),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Unknown paths and unsupported methods are both plain 404s."""
        if exc.status_code in (404, 405):
            return PlainTextResponse("Not Found", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        return check_health(config, request.app.state.knowledge_base)

    @app.post("/chat")
    async def chat(request: Request):
        """Answer a visitor question."""
        return await process_chat(request, request.app.state.orchestrator)

    return app


# Load configuration
config = APIConfig()

# Setup logging
setup_logging(
    log_level=config.get("logging.level", "INFO"),
    log_file=config.get("logging.file"),
    structured=bool(config.get("logging.structured", False)),
)

app = create_app(config)


if __name__ == "__main__":
    import uvicorn

    server_config = config.get("server", {})

    uvicorn.run(
        "main:app",
        host=server_config.get("host", "0.0.0.0"),
        port=server_config.get("port", 8787),
        reload=server_config.get("reload", False),
        workers=1 if server_config.get("reload", False) else server_config.get("workers", 1),
        log_level=config.get("logging.level", "info").lower(),
    )
