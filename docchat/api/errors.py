"""Error types for the HTTP surface.

Every error carries a status code and a user-facing message. Internal
details are only rendered in development mode.
"""

import logging
import time

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docchat.config import get_settings
from docchat.models.schemas import ErrorResponse

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid request format. Please ensure you are sending valid JSON."

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "X-Content-Type-Options": "nosniff",
}


class AppError(Exception):
    """Base class for errors rendered as JSON error responses."""

    error_type = "server_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status
        self.details = details


class ValidationError(AppError):
    """Malformed or out-of-bound client input. Never retried."""

    error_type = "validation_error"
    default_status = status.HTTP_400_BAD_REQUEST


class ChatError(AppError):
    """Upstream unavailable, misconfigured, or rejecting a chat request."""

    error_type = "chat_error"
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE


class ProcessingError(AppError):
    """Accepted input that could not be turned into a result."""

    error_type = "processing_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServerError(AppError):
    """Unexpected failure. Details are hidden outside development."""

    error_type = "server_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class ThreadNotFoundError(LookupError):
    """Raised by the upstream when a thread id is unknown."""


def classify_stream_start_error(exc: Exception) -> ChatError:
    """Translate an upstream open failure into a classified chat error."""
    text = str(exc).lower()

    if isinstance(exc, ThreadNotFoundError) or "thread not found" in text:
        return ChatError(
            "Chat session not found. Please start a new conversation.",
            status.HTTP_404_NOT_FOUND,
        )
    if "quota" in text or "rate limit" in text:
        return ChatError(
            "Service temporarily unavailable due to high demand. "
            "Please try again in a few minutes.",
            status.HTTP_429_TOO_MANY_REQUESTS,
        )
    return ChatError(
        "Unable to start chat session. Please try again.",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )


def mark_request_start(request: Request) -> None:
    """Record the request start so error bodies can report elapsed time."""
    request.state.started_at = time.perf_counter()


def elapsed_ms(request: Request) -> int | None:
    started_at = getattr(request.state, "started_at", None)
    if started_at is None:
        return None
    return int((time.perf_counter() - started_at) * 1000)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as the JSON error body."""
    processing_time = elapsed_ms(request)
    logger.error(
        f"{request.method} {request.url.path} failed after {processing_time}ms: "
        f"{exc.error_type} {exc.status_code} {exc.message}"
    )

    details = None
    if isinstance(exc, ServerError):
        details = exc.details if get_settings().is_development else "Please try again later."
    elif exc.details and get_settings().is_development:
        details = exc.details

    body = ErrorResponse(
        error=exc.message,
        type=exc.error_type,
        processingTimeMs=processing_time,
        details=details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=NO_CACHE_HEADERS,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report an unparseable or wrongly shaped JSON body as a 400."""
    return await app_error_handler(
        request, ValidationError(INVALID_JSON_MESSAGE, details=str(exc.errors()))
    )
