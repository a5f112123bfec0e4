"""Upstream-to-client relay for chat event streams.

Responsibilities:
    - Opening the upstream run and classifying open failures
    - Re-encoding each upstream event as one SSE frame
    - Synthetic lifecycle frames (connection, completion, error)
    - Enforcing the per-request event ceiling
"""

from docchat.relay.stream_relay import StreamRelay

__all__ = ["StreamRelay"]
