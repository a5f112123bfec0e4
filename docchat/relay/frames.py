"""Wire frame encoding for the chat event stream.

Each frame is a single ``data: <json>\\n\\n`` line pair.
"""

import json
from typing import Any

from docchat.models.schemas import (
    CompletionFrame,
    ConnectionFrame,
    ErrorFrame,
    UpstreamEvent,
)

FRAME_PREFIX = "data: "
FRAME_DELIMITER = "\n\n"


def encode_frame(payload: dict[str, Any]) -> str:
    """Serialize one payload as a wire frame.

    Raises:
        TypeError: If the payload holds values JSON cannot represent.
        ValueError: If the payload holds NaN/Infinity or circular references.
    """
    body = json.dumps(payload, ensure_ascii=False, allow_nan=False)
    return f"{FRAME_PREFIX}{body}{FRAME_DELIMITER}"


def encode_upstream_event(chunk: Any) -> str:
    """Re-serialize an upstream event as ``{event, data}``.

    Raises:
        TypeError: If the chunk is not an event object or is not serializable.
        ValueError: If the chunk data cannot be represented as JSON.
    """
    if isinstance(chunk, UpstreamEvent):
        return encode_frame({"event": chunk.event, "data": chunk.data})
    if isinstance(chunk, dict):
        return encode_frame(chunk)
    raise TypeError(f"Invalid chunk format: {type(chunk).__name__}")


def connection_frame() -> str:
    return encode_frame(ConnectionFrame().model_dump())


def completion_frame(total: int) -> str:
    return encode_frame(CompletionFrame(totalMessages=total).model_dump())


def error_frame(details: str) -> str:
    return encode_frame(ErrorFrame(details=details).model_dump())
