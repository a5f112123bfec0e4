"""Incremental parser for the chat event stream.

Network reads do not line up with frames: a chunk may hold several
frames, part of one, or split a multi-byte character. The parser keeps
the unfinished tail between reads and only decodes complete lines.
"""

import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable
from typing import Any

from docchat.models.conversation import StreamEvent, StreamEventKind

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
LIFECYCLE_TYPES = {"connection", "completion", "error"}

_EVENT_KINDS = {
    "messages/partial": StreamEventKind.PARTIAL_MESSAGE,
    "updates": StreamEventKind.RETRIEVAL_UPDATE,
}


def classify(payload: dict[str, Any]) -> StreamEvent:
    """Turn a decoded frame payload into a StreamEvent."""
    event = payload.get("event")
    if isinstance(event, str):
        kind = _EVENT_KINDS.get(event, StreamEventKind.UNKNOWN)
        return StreamEvent(kind=kind, name=event, data=payload.get("data"))

    frame_type = payload.get("type")
    if frame_type in LIFECYCLE_TYPES:
        return StreamEvent(kind=StreamEventKind.LIFECYCLE, name=frame_type, data=payload)

    return StreamEvent(kind=StreamEventKind.UNKNOWN, data=payload)


def parse_frame(line: str) -> StreamEvent | None:
    """Parse one wire line. Returns None for non-data lines and malformed frames."""
    if not line.startswith(DATA_PREFIX):
        return None

    body = line[len(DATA_PREFIX):]
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Dropping malformed frame ({e}): {body[:100]!r}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Dropping frame that is not an object: {body[:100]!r}")
        return None

    return classify(payload)


class SSEParser:
    """Chunk-wise frame parser.

    ``feed`` returns the events completed by a chunk; the trailing partial
    line is kept for the next call. ``close`` drops whatever is left, since
    a frame cut off by the end of the stream cannot be used.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        if not text:
            return []

        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")

        events: list[StreamEvent] = []
        for line in lines:
            event = parse_frame(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def close(self) -> None:
        tail = self._buffer + self._decoder.decode(b"", final=True)
        if tail.strip():
            logger.debug(f"Discarding truncated frame at end of stream: {tail[:100]!r}")
        self._buffer = ""
        self._decoder.reset()


async def iter_events(chunks: AsyncIterable[bytes]) -> AsyncGenerator[StreamEvent]:
    """Yield events from an async byte stream, in arrival order."""
    parser = SSEParser()
    try:
        async for chunk in chunks:
            for event in parser.feed(chunk):
                yield event
    finally:
        parser.close()
