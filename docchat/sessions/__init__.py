"""Session registry for active conversations."""

from docchat.sessions.registry import Session, SessionRegistry, get_session_registry

__all__ = ["Session", "SessionRegistry", "get_session_registry"]
