"""Async client for the docchat API.

Drives one conversation: opens threads, streams chat answers and folds
each event into ``ConversationState``. A new submit cancels the stream
still in flight, so only the latest request ever updates the state.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import aclosing
from typing import Any

import httpx

from docchat.client.coordinator import CancellationCoordinator, StreamRequest
from docchat.client.reducer import begin_turn, fail_turn, finish_turn, reduce
from docchat.client.sse_parser import iter_events
from docchat.models.conversation import ConversationState, ConversationStatus

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase


class ChatClient:
    """Conversation client over the streaming chat endpoint.

    Args:
        base_url: API root, defaults to ``API_BASE_URL``.
        http_client: Optional shared ``httpx.AsyncClient``; one is created
            (and closed by ``aclose``) when omitted.
        on_update: Called with the new state after every change.
        timeout: Request timeout in seconds for an owned client.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        on_update: Callable[[ConversationState], None] | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self.on_update = on_update
        self.state = ConversationState()
        self.thread_id: str | None = None
        self.last_error: str | None = None
        self._coordinator = CancellationCoordinator()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._coordinator.cancel_active()
        await self.end_thread()
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _set_state(self, state: ConversationState) -> None:
        self.state = state
        if self.on_update is not None:
            self.on_update(state)

    async def create_thread(self) -> str:
        """Open a new conversation thread on the server."""
        response = await self._http.post(self._url("/threads"))
        response.raise_for_status()
        self.thread_id = response.json()["threadId"]
        logger.info(f"Created thread {self.thread_id}")
        return self.thread_id

    async def submit(self, message: str) -> ConversationState:
        """Send a message and stream the answer into ``state``.

        Any request still streaming is cancelled first; its events are
        never applied once this call has begun the new turn.
        """
        text = message.strip()
        if not text:
            return self.state

        if self.thread_id is None:
            await self.create_thread()

        request = self._coordinator.begin()
        self.last_error = None
        self._set_state(begin_turn(self.state, text))

        task = asyncio.create_task(self._stream(request, text))
        request.attach(task)
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            request.cancel()
            raise
        finally:
            request.finish()

        if not task.cancelled() and (exc := task.exception()) is not None:
            raise exc
        return self.state

    async def _stream(self, request: StreamRequest, text: str) -> None:
        try:
            async with self._http.stream(
                "POST",
                self._url("/chat"),
                json={"message": text, "threadId": self.thread_id},
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.is_error:
                    await response.aread()
                    self._fail(request, f"HTTP {response.status_code}: {_error_detail(response)}")
                    return

                async with aclosing(iter_events(response.aiter_bytes())) as events:
                    async for event in events:
                        if request.cancelled:
                            return
                        self._set_state(reduce(self.state, event))
                        if self.state.status is ConversationStatus.FAILED:
                            self.last_error = "Connection interrupted"
                            return
        except httpx.RequestError as e:
            self._fail(request, f"Connection failed: {e}")
            return

        if not request.cancelled:
            self._set_state(finish_turn(self.state))

    def _fail(self, request: StreamRequest, error: str) -> None:
        if request.cancelled:
            return
        logger.error(f"Chat request {request.request_id} failed: {error}")
        self.last_error = error
        self._set_state(fail_turn(self.state))

    def cancel(self) -> bool:
        """Abort the active stream, keeping whatever text has arrived."""
        if not self._coordinator.cancel_active():
            return False
        self._set_state(finish_turn(self.state))
        return True

    async def ingest(self, files: list[tuple[str, bytes]]) -> dict[str, Any]:
        """Upload PDFs to ``/ingest`` and return the decoded response body.

        Args:
            files: ``(filename, content)`` pairs.
        """
        upload = [("files", (name, content, "application/pdf")) for name, content in files]
        response = await self._http.post(self._url("/ingest"), files=upload)
        body = response.json()
        if response.is_success and self.thread_id is None:
            self.thread_id = body["data"]["threadId"]
        if not response.is_success:
            logger.warning(f"Ingestion failed ({response.status_code}): {body.get('error')}")
        return body

    async def end_thread(self) -> None:
        """Release the current thread on the server, if there is one.

        A thread the server no longer knows (404) counts as ended.
        """
        thread_id, self.thread_id = self.thread_id, None
        if thread_id is None:
            return
        try:
            response = await self._http.delete(self._url(f"/threads/{thread_id}"))
        except httpx.HTTPError as e:
            logger.warning(f"Could not end thread {thread_id}: {e}")
            return
        if response.is_error and response.status_code != 404:
            logger.warning(f"Ending thread {thread_id} failed ({response.status_code})")
        else:
            logger.info(f"Ended thread {thread_id}")

    async def reset(self) -> None:
        """End the current thread and start a new conversation."""
        self._coordinator.cancel_active()
        await self.end_thread()
        self.last_error = None
        self._set_state(ConversationState())
