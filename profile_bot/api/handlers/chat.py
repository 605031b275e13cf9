"""Chat endpoint handler."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...core.orchestrator import ChatOrchestrator, ChatOutcome, RequestContext
from ...lib.rate_limiter import get_client_ip, get_session_id
from ..models.chat import ChatResponse
from ..models.errors import ErrorResponse, RateLimitErrorResponse, ServerErrorResponse

logger = logging.getLogger(__name__)

RESPONSE_MODELS: dict[int, type[BaseModel]] = {
    200: ChatResponse,
    400: ErrorResponse,
    429: RateLimitErrorResponse,
    500: ServerErrorResponse,
}


def build_request_context(request: Request) -> RequestContext:
    """Derive session, IP and origin from the incoming request."""
    peer_host = request.client.host if request.client else None
    ip_address = get_client_ip(request.headers, peer_host)
    return RequestContext(
        session_id=get_session_id(request.headers, ip_address),
        ip_address=ip_address,
        origin=request.headers.get("Origin"),
    )


def render_outcome(outcome: ChatOutcome) -> JSONResponse:
    """Serialize an orchestrator outcome through its response model."""
    model = RESPONSE_MODELS.get(outcome.status_code)
    content = outcome.body
    if model is not None:
        content = model.model_validate(outcome.body).model_dump(exclude_none=True)

    return JSONResponse(
        status_code=outcome.status_code,
        content=content,
        headers=outcome.headers,
    )


async def process_chat(request: Request, orchestrator: ChatOrchestrator) -> JSONResponse:
    """Handle POST /chat.

    Args:
        request: Incoming HTTP request
        orchestrator: Chat pipeline

    Returns:
        JSON response with status set by the pipeline outcome
    """
    context = build_request_context(request)
    raw_body = await request.body()

    outcome = await orchestrator.handle(raw_body, context)
    logger.debug(f"Chat request for session {context.session_id} ended in {outcome.state.value}")

    return render_outcome(outcome)
