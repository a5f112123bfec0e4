"""Client side of the chat stream.

Parses the SSE wire format, folds events into conversation state and
keeps at most one stream live per conversation.
"""

from docchat.client.chat_client import ChatClient
from docchat.client.coordinator import CancellationCoordinator, StreamRequest
from docchat.client.reducer import FAILURE_MESSAGE, begin_turn, fail_turn, finish_turn, reduce
from docchat.client.sse_parser import SSEParser, iter_events, parse_frame

__all__ = [
    "FAILURE_MESSAGE",
    "CancellationCoordinator",
    "ChatClient",
    "SSEParser",
    "StreamRequest",
    "begin_turn",
    "fail_turn",
    "finish_turn",
    "iter_events",
    "parse_frame",
    "reduce",
]
