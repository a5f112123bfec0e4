from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


class UpstreamEvent(BaseModel):
    """An event produced by the upstream reasoning service.

    Attributes:
        event: Stream mode name (e.g. ``messages/partial``, ``updates``).
        data: Event payload, forwarded to the client unchanged.
    """

    event: str
    data: Any = None


class ThreadHandle(BaseModel):
    """Upstream handle for one conversation thread."""

    thread_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)


class ConnectionFrame(BaseModel):
    """Lifecycle frame sent as soon as the upstream stream is open."""

    type: Literal["connection"] = "connection"
    message: str = "Connected to chat service"
    timestamp: str = Field(default_factory=utc_timestamp)


class CompletionFrame(BaseModel):
    """Lifecycle frame sent when the upstream stream is exhausted."""

    type: Literal["completion"] = "completion"
    message: str = "Chat response completed"
    timestamp: str = Field(default_factory=utc_timestamp)
    totalMessages: int = Field(ge=0)


class ErrorFrame(BaseModel):
    """Lifecycle frame sent when forwarding fails mid-stream."""

    type: Literal["error"] = "error"
    error: str = "Connection interrupted"
    details: str = "Please try again"
    timestamp: str = Field(default_factory=utc_timestamp)


class ChatRequest(BaseModel):
    """Body of POST /chat.

    Fields are left untyped here; ``validate_chat_input`` checks them so
    each failure gets its own 400 message.
    """

    message: Any = Field(
        default=None,
        description="User message, 1 to 10,000 characters after trimming",
        examples=["What does chapter two cover?"],
    )
    threadId: Any = Field(
        default=None,
        description="Conversation thread identifier, 1 to 100 characters",
        examples=["3f0c6a52-5b1e-4c1e-9a53-1d2f0f4b7e21"],
    )


class ThreadResponse(BaseModel):
    """Response after creating a chat thread."""

    threadId: str
    createdAt: datetime


class IngestData(BaseModel):
    """Details of a completed ingestion run.

    Attributes:
        threadId: Thread the documents were ingested into.
        filesProcessed: Names of files that produced at least one document.
        totalDocuments: Number of page documents submitted.
        processingTimeMs: Wall time of the request.
        warnings: Per-file problems that did not fail the request.
    """

    threadId: str
    filesProcessed: list[str]
    totalDocuments: int = Field(ge=0)
    processingTimeMs: int = Field(ge=0)
    warnings: list[str] | None = None


class IngestResponse(BaseModel):
    """Response after document ingestion."""

    success: bool = True
    message: str = "Documents processed successfully"
    data: IngestData


class ErrorResponse(BaseModel):
    """JSON body for every failed request."""

    success: bool = False
    error: str
    type: str
    processingTimeMs: int | None = None
    details: str | None = None
