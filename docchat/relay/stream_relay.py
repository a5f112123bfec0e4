"""Relay from one upstream event stream to one downstream SSE stream.

A relay call opens the upstream run, then hands back an async generator
that the HTTP layer streams to the client. Open failures raise before any
bytes are sent, so they can still be reported with a proper status code.
Failures after that point can only be reported in-band as an error frame.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from typing import Any

from docchat.agent.chat_agent import AgentService
from docchat.api.errors import ChatError, classify_stream_start_error
from docchat.config import Settings, get_settings
from docchat.relay.frames import (
    completion_frame,
    connection_frame,
    encode_upstream_event,
    error_frame,
)

logger = logging.getLogger(__name__)


class StreamRelay:
    """Forwards a single upstream chat run to the client.

    The event ceiling is an instance field; the event counter lives in
    the forwarding loop, so nothing survives once a call returns.
    """

    def __init__(
        self,
        upstream_factory: Callable[[], AgentService],
        settings: Settings | None = None,
    ) -> None:
        self._upstream_factory = upstream_factory
        self._settings = settings or get_settings()
        self.max_events = self._settings.max_stream_events

    async def open(self, message: str, thread_id: str) -> AsyncGenerator[str]:
        """Open the upstream stream for a validated message.

        Args:
            message: Validated user message.
            thread_id: Validated session identifier.

        Returns:
            Async generator of wire frames, starting with the connection frame.

        Raises:
            ChatError: 503 when no assistant is configured, otherwise the
                classified upstream open failure (404, 429 or 503).
        """
        assistant_id = self._settings.retrieval_assistant_id
        if not assistant_id:
            raise ChatError(
                "Service configuration error: Chat service is not properly configured",
                503,
            )

        try:
            upstream = self._upstream_factory()
        except Exception as e:
            logger.error(f"Failed to initialize chat service: {e}")
            raise ChatError(
                "Failed to initialize chat service. Please try again later.", 503
            ) from e

        try:
            stream = await upstream.open_run_stream(
                thread_id=thread_id,
                assistant_id=assistant_id,
                query=message.strip(),
                config=self._settings.retrieval_stream_config(),
            )
        except Exception as e:
            logger.error(f"Stream initialization failed for thread {thread_id}: {e}")
            raise classify_stream_start_error(e) from e

        logger.info(f"Opened upstream stream for thread {thread_id}")
        return self._forward(stream, thread_id)

    async def _forward(self, stream: AsyncIterator[Any], thread_id: str) -> AsyncGenerator[str]:
        received = 0
        forwarded = 0

        try:
            yield connection_frame()

            async for chunk in stream:
                received += 1
                if received > self.max_events:
                    logger.warning(
                        f"Stream for thread {thread_id} exceeded maximum events "
                        f"({self.max_events}), terminating"
                    )
                    break

                try:
                    frame = encode_upstream_event(chunk)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Skipping event that could not be serialized: {e}")
                    continue

                forwarded += 1
                yield frame

            yield completion_frame(forwarded)
            logger.info(f"Chat stream for thread {thread_id} completed ({forwarded} events)")

        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Chat stream for thread {thread_id} cancelled by client")
            raise

        except Exception as e:
            logger.error(f"Streaming error for thread {thread_id}: {e}")
            details = str(e) if self._settings.is_development else "Please try again"
            yield error_frame(details)

        finally:
            await _close_upstream(stream)


async def _close_upstream(stream: AsyncIterator[Any]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.warning(f"Failed to close upstream stream: {e}")
