"""Conversation state models shared by the stream parser and reducer."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ConversationStatus(str, Enum):
    """Status of the active (or last) stream against a conversation."""

    IDLE = "idle"
    PENDING = "pending"
    CONNECTED = "connected"
    DONE = "done"
    FAILED = "failed"


class SourceDocument(BaseModel):
    """A retrieved document excerpt cited by an assistant message.

    Attributes:
        source: Originating file name or identifier.
        page_number: Page the excerpt was taken from.
        page_count: Total pages of the originating file.
        author: Document author, when known.
        published_date: Publication date as reported by the document.
        doctype: Document type label.
        language: Document language.
        excerpt: The retrieved text.
    """

    source: str | None = None
    page_number: int | None = None
    page_count: int | None = None
    author: str | None = None
    published_date: str | None = None
    doctype: str | None = None
    language: str | None = None
    excerpt: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "SourceDocument":
        """Build a document from its wire shape ``{pageContent, metadata}``.

        Raises:
            ValueError: If the payload is not a document object.
        """
        if not isinstance(payload, dict):
            raise ValueError("Document payload must be an object")

        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("Document metadata must be an object")

        loc = metadata.get("loc")
        page_number = loc.get("pageNumber") if isinstance(loc, dict) else None

        return cls(
            source=metadata.get("source") or metadata.get("filename"),
            page_number=page_number,
            page_count=metadata.get("pageCount"),
            author=metadata.get("author"),
            published_date=metadata.get("publishedDate"),
            doctype=metadata.get("doctype"),
            language=metadata.get("language"),
            excerpt=payload.get("pageContent") or "",
        )

    def citation(self, index: int) -> str:
        """Render a one-line citation, numbered from 1."""
        source = self.source or "Unknown Source"
        page = self.page_number or "N/A"
        return f"{index}. {source} (Page {page})"


def format_citations(sources: list[SourceDocument]) -> str:
    """Render a numbered citation list for export."""
    return "\n".join(doc.citation(i) for i, doc in enumerate(sources, start=1))


class Message(BaseModel):
    """A single message in the conversation.

    Only the trailing assistant message is ever replaced while a stream
    is active; every other message is left untouched.
    """

    role: Literal["user", "assistant"]
    content: str = ""
    sources: list[SourceDocument] | None = None
    timestamp: datetime | None = None


class StreamEventKind(str, Enum):
    """Discriminator for parsed wire events."""

    PARTIAL_MESSAGE = "partial-message"
    RETRIEVAL_UPDATE = "retrieval-update"
    LIFECYCLE = "lifecycle"
    UNKNOWN = "unknown"


class StreamEvent(BaseModel):
    """One event decoded from a single wire frame.

    Attributes:
        kind: Event category.
        name: Wire event name, or the lifecycle type for synthetic frames.
        data: Event payload, shape depends on the kind.
    """

    kind: StreamEventKind
    name: str = ""
    data: Any = None


class ConversationState(BaseModel):
    """Visible conversation state folded from stream events.

    Attributes:
        messages: Ordered messages, append-only except the trailing assistant one.
        pending_citations: Latest retrieval snapshot, attached to the next text update.
        status: Status of the current stream.
        event_count: Number of events applied during the current turn.
    """

    messages: list[Message] = Field(default_factory=list)
    pending_citations: list[SourceDocument] = Field(default_factory=list)
    status: ConversationStatus = ConversationStatus.IDLE
    event_count: int = 0

    @property
    def trailing_assistant(self) -> Message | None:
        if self.messages and self.messages[-1].role == "assistant":
            return self.messages[-1]
        return None

    @property
    def is_streaming(self) -> bool:
        return self.status in (ConversationStatus.PENDING, ConversationStatus.CONNECTED)
