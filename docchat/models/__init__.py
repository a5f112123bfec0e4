"""Pydantic models for the chat protocol.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Message, SourceDocument: Conversation content and citations
    - StreamEvent: One parsed wire frame
    - ConversationState: Client-side state folded from stream events
    - UpstreamEvent: Event produced by the upstream service
    - ConnectionFrame, CompletionFrame, ErrorFrame: Synthetic lifecycle frames
    - IngestResponse, ThreadResponse, ErrorResponse: HTTP response bodies
"""

from docchat.models.conversation import (
    ConversationState,
    ConversationStatus,
    Message,
    SourceDocument,
    StreamEvent,
    StreamEventKind,
    format_citations,
)
from docchat.models.schemas import (
    CompletionFrame,
    ConnectionFrame,
    ErrorFrame,
    ErrorResponse,
    IngestData,
    IngestResponse,
    ThreadHandle,
    ThreadResponse,
    UpstreamEvent,
)

__all__ = [
    "CompletionFrame",
    "ConnectionFrame",
    "ConversationState",
    "ConversationStatus",
    "ErrorFrame",
    "ErrorResponse",
    "IngestData",
    "IngestResponse",
    "Message",
    "SourceDocument",
    "StreamEvent",
    "StreamEventKind",
    "ThreadHandle",
    "ThreadResponse",
    "UpstreamEvent",
    "format_citations",
]
