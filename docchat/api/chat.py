"""Chat endpoints: streaming relay and thread lifecycle.

Routes:
    - POST /chat: Validate, open the upstream run, stream SSE frames
    - OPTIONS /chat: CORS preflight
    - POST /threads: Create a conversation thread
    - DELETE /threads/{thread_id}: End a conversation
"""

import logging

from fastapi import APIRouter, Body, Depends, Request, Response, status
from fastapi.responses import StreamingResponse

from docchat.api.deps import get_registry, get_relay
from docchat.api.errors import (
    AppError,
    ChatError,
    ServerError,
    ValidationError,
    mark_request_start,
)
from docchat.api.validation import validate_chat_input
from docchat.models.schemas import ChatRequest, ErrorResponse, ThreadResponse
from docchat.relay.stream_relay import StreamRelay
from docchat.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "X-Content-Type-Options": "nosniff",
}

SSE_HEADERS = {
    **CORS_HEADERS,
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "X-Frame-Options": "DENY",
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid message or thread ID"},
    404: {"model": ErrorResponse, "description": "Chat session not found"},
    429: {"model": ErrorResponse, "description": "Upstream rate limit or quota"},
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
    503: {"model": ErrorResponse, "description": "Chat service unavailable or misconfigured"},
}


@router.post(
    "/chat",
    response_class=StreamingResponse,
    responses=ERROR_RESPONSES,
)
async def chat(
    request: Request,
    body: ChatRequest = Body(...),
    relay: StreamRelay = Depends(get_relay),
    registry: SessionRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Stream an answer for a message as Server-Sent Events.

    Every frame is ``data: <json>\\n\\n``. Upstream events are forwarded as
    ``{"event", "data"}``; the relay adds ``connection``, ``completion`` and
    ``error`` lifecycle frames.
    """
    mark_request_start(request)

    try:
        message = body.message
        thread_id = body.threadId

        result = validate_chat_input(message, thread_id)
        if not result.valid:
            raise ValidationError(result.error or "Invalid request")

        frames = await relay.open(message, thread_id)
        registry.get_or_create(thread_id)

    except AppError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error handling chat request: {e}")
        raise ServerError(
            "An unexpected error occurred while processing your request.",
            details=str(e),
        ) from e

    return StreamingResponse(
        frames,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.options("/chat", include_in_schema=False)
async def chat_options() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/threads", response_model=ThreadResponse, responses=ERROR_RESPONSES)
async def create_thread(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
) -> ThreadResponse:
    """Create a conversation thread for a new chat."""
    mark_request_start(request)
    try:
        session = await registry.create()
    except Exception as e:
        logger.error(f"Error creating thread: {e}")
        raise ChatError(
            "Unable to connect to the chat service. Please try again later.",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        ) from e

    return ThreadResponse(threadId=session.thread_id, createdAt=session.created_at)


@router.delete(
    "/threads/{thread_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
)
async def delete_thread(
    thread_id: str,
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
) -> Response:
    """End a conversation and release its session."""
    mark_request_start(request)
    if not registry.remove(thread_id):
        raise ChatError(
            "Chat session not found. Please start a new conversation.",
            status.HTTP_404_NOT_FOUND,
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
