"""FastAPI dependencies shared by the routers.

The upstream service is handed out as a factory so that routes can
validate input and check configuration before it is constructed.
"""

from collections.abc import Callable

from fastapi import Depends

from docchat.agent.chat_agent import AgentService, get_agent_service
from docchat.config import Settings, get_settings
from docchat.relay.stream_relay import StreamRelay
from docchat.sessions.registry import SessionRegistry, get_session_registry

UpstreamFactory = Callable[[], AgentService]


def get_upstream_factory() -> UpstreamFactory:
    return get_agent_service


def get_relay(
    upstream_factory: UpstreamFactory = Depends(get_upstream_factory),
    settings: Settings = Depends(get_settings),
) -> StreamRelay:
    """Build a relay for one chat request."""
    return StreamRelay(upstream_factory, settings)


def get_registry() -> SessionRegistry:
    return get_session_registry()
