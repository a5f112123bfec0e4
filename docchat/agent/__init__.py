"""Upstream reasoning service built on Agno.

Responsibilities:
    - Thread creation for new conversations
    - Retrieval from the LanceDB knowledge base
    - Streaming generation, exposed as a sequence of upstream events
    - Adding ingested page documents to the knowledge base

Stays behind the relay; nothing here knows about HTTP or SSE framing.
"""

from docchat.agent.chat_agent import AgentService, UpstreamRunError, get_agent_service
from docchat.agent.config import AgentConfig, get_agent_config

__all__ = [
    "AgentConfig",
    "AgentService",
    "UpstreamRunError",
    "get_agent_config",
    "get_agent_service",
]
