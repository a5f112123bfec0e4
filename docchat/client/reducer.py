"""Folds parsed stream events into conversation state.

``reduce`` is a pure function of (state, event): it returns a new state
and never raises on malformed input. Timestamps come from the ``now``
argument so callers and tests control the clock.

Citation handling goes through a pending snapshot. A retrieval update
only replaces ``pending_citations``; the snapshot is attached to the
trailing assistant message by the next partial-message event.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from docchat.models.conversation import (
    ConversationState,
    ConversationStatus,
    Message,
    SourceDocument,
    StreamEvent,
    StreamEventKind,
)

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Sorry, there was an error processing your message. Please try again."

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def reduce(
    state: ConversationState,
    event: StreamEvent,
    now: Clock = utc_now,
) -> ConversationState:
    """Apply one event and return the next state."""
    if state.status is ConversationStatus.FAILED:
        return state

    state = state.model_copy(update={"event_count": state.event_count + 1})

    if event.kind is StreamEventKind.PARTIAL_MESSAGE:
        return _apply_partial(state, event.data, now)

    if event.kind is StreamEventKind.RETRIEVAL_UPDATE:
        return state.model_copy(update={"pending_citations": _citations_from(event.data)})

    if event.kind is StreamEventKind.LIFECYCLE:
        if event.name == "error":
            return fail_turn(state, now)
        if event.name == "connection":
            return state.model_copy(update={"status": ConversationStatus.CONNECTED})
        if event.name == "completion":
            return state.model_copy(update={"status": ConversationStatus.DONE})

    logger.info(f"Unknown stream event: {event.name!r} {str(event.data)[:100]}")
    return state


def _partial_text(data: Any) -> str | None:
    """Extract the assistant text from a ``messages/partial`` payload.

    The last list element must be an ``ai`` message with string content.
    Content starting with ``{`` is a tool-call payload leaking into the
    text channel and is skipped.
    """
    if not isinstance(data, list) or not data:
        return None

    last = data[-1]
    if not isinstance(last, dict) or last.get("type") != "ai":
        return None

    content = last.get("content")
    if content is None:
        content = ""
    if not isinstance(content, str) or content.startswith("{"):
        return None
    return content


def _apply_partial(state: ConversationState, data: Any, now: Clock) -> ConversationState:
    text = _partial_text(data)
    trailing = state.trailing_assistant
    if text is None or trailing is None:
        return state

    updated = trailing.model_copy(
        update={
            "content": text,
            "sources": list(state.pending_citations),
            "timestamp": now(),
        }
    )
    return state.model_copy(update={"messages": [*state.messages[:-1], updated]})


def _citations_from(data: Any) -> list[SourceDocument]:
    """Read ``retrieveDocuments.documents``; anything malformed yields []."""
    retrieve = data.get("retrieveDocuments") if isinstance(data, dict) else None
    documents = retrieve.get("documents") if isinstance(retrieve, dict) else None
    if not isinstance(documents, list):
        return []

    try:
        return [SourceDocument.from_payload(doc) for doc in documents]
    except ValueError as e:
        logger.warning(f"Ignoring malformed retrieved documents: {e}")
        return []


def begin_turn(state: ConversationState, text: str, now: Clock = utc_now) -> ConversationState:
    """Append the user message and an empty assistant placeholder."""
    timestamp = now()
    messages = [
        *state.messages,
        Message(role="user", content=text, timestamp=timestamp),
        Message(role="assistant", content="", timestamp=timestamp),
    ]
    return state.model_copy(
        update={
            "messages": messages,
            "pending_citations": [],
            "status": ConversationStatus.PENDING,
            "event_count": 0,
        }
    )


def fail_turn(state: ConversationState, now: Clock = utc_now) -> ConversationState:
    """Freeze the trailing assistant message to the failure text."""
    messages = state.messages
    trailing = state.trailing_assistant
    if trailing is not None:
        frozen = trailing.model_copy(update={"content": FAILURE_MESSAGE, "timestamp": now()})
        messages = [*messages[:-1], frozen]
    return state.model_copy(update={"messages": messages, "status": ConversationStatus.FAILED})


def finish_turn(state: ConversationState) -> ConversationState:
    """Mark a stream that ended without a completion frame as done."""
    if state.is_streaming:
        return state.model_copy(update={"status": ConversationStatus.DONE})
    return state
