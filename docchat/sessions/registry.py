"""Registry of active chat sessions.

Maps a thread identifier to the upstream handle for that conversation.
Sessions live only as long as the process; nothing is persisted.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from docchat.agent.chat_agent import AgentService, get_agent_service
from docchat.models.schemas import ThreadHandle

logger = logging.getLogger(__name__)


class Session(BaseModel):
    """An active conversation.

    Attributes:
        thread_id: Opaque identifier, 1-100 characters.
        created_at: When the session was registered.
        handle: Upstream handle for the conversation.
    """

    model_config = ConfigDict(frozen=True)

    thread_id: str = Field(..., min_length=1, max_length=100)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    handle: Any = None


class SessionRegistry:
    """Process-wide mapping from thread id to session.

    Holds one session per conversation. Sessions are created either
    explicitly through the upstream or lazily the first time a chat
    request names a thread the registry has not seen.
    """

    def __init__(self, upstream_factory: Callable[[], AgentService]) -> None:
        self._upstream_factory = upstream_factory
        self._sessions: dict[str, Session] = {}

    async def create(self) -> Session:
        """Create a new upstream thread and register it."""
        handle: ThreadHandle = await self._upstream_factory().create_thread()
        session = Session(
            thread_id=handle.thread_id,
            created_at=handle.created_at,
            handle=handle,
        )
        self._sessions[session.thread_id] = session
        logger.info(f"Created session {session.thread_id}")
        return session

    def get_or_create(self, thread_id: str) -> Session:
        """Return the session for a thread, registering it on first use."""
        session = self._sessions.get(thread_id)
        if session is None:
            session = Session(
                thread_id=thread_id,
                handle=ThreadHandle(thread_id=thread_id),
            )
            self._sessions[thread_id] = session
            logger.info(f"Registered session {thread_id}")
        return session

    def get(self, thread_id: str) -> Session | None:
        return self._sessions.get(thread_id)

    def remove(self, thread_id: str) -> bool:
        """Tear down a session. Returns False if it was not registered."""
        removed = self._sessions.pop(thread_id, None) is not None
        if removed:
            logger.info(f"Removed session {thread_id}")
        return removed

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._sessions


_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Get or create the global session registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(get_agent_service)
    return _registry
