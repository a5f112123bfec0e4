"""At most one live chat stream per conversation.

Starting a new request cancels the previous one before the new request
is handed out, so no state update from the older stream can land after
the newer one has begun.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class StreamRequest:
    """Handle for one in-flight chat stream."""

    def __init__(self, request_id: int, coordinator: "CancellationCoordinator") -> None:
        self.request_id = request_id
        self._coordinator = coordinator
        self._task: asyncio.Task | None = None
        self._cancelled = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished

    def attach(self, task: asyncio.Task) -> None:
        """Bind the task reading this stream; cancelling the request cancels it."""
        self._task = task
        if self._cancelled:
            task.cancel()

    def cancel(self) -> bool:
        """Cancel the request. Returns False if it was already cancelled or finished."""
        if self._cancelled or self._finished:
            return False
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(f"Cancelled chat stream request {self.request_id}")
        return True

    def finish(self) -> None:
        self._finished = True
        self._coordinator._release(self)


class CancellationCoordinator:
    def __init__(self) -> None:
        self._active: StreamRequest | None = None
        self._next_id = 0

    @property
    def active(self) -> StreamRequest | None:
        return self._active

    def begin(self) -> StreamRequest:
        """Cancel the active request, if any, and return a fresh one."""
        self.cancel_active()
        self._next_id += 1
        request = StreamRequest(self._next_id, self)
        self._active = request
        return request

    def cancel_active(self) -> bool:
        request, self._active = self._active, None
        if request is None:
            return False
        return request.cancel()

    def _release(self, request: StreamRequest) -> None:
        if self._active is request:
            self._active = None
