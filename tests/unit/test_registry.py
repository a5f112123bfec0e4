"""Unit tests for the session registry."""

import pytest
import pytest_check as check

from docchat.sessions.registry import Session, SessionRegistry
from tests.conftest import FakeUpstream


class TestSessionRegistry:
    """Tests for session lookup and lifecycle."""

    async def test_create_registers_upstream_thread(
        self, registry: SessionRegistry, fake_upstream: FakeUpstream
    ) -> None:
        session = await registry.create()

        check.equal(fake_upstream.threads_created, 1)
        check.is_in(session.thread_id, registry)
        check.is_(registry.get(session.thread_id), session)

    def test_get_or_create_is_stable(self, registry: SessionRegistry) -> None:
        first = registry.get_or_create("t1")
        second = registry.get_or_create("t1")

        check.is_(first, second)
        check.equal(len(registry), 1)

    def test_remove(self, registry: SessionRegistry) -> None:
        registry.get_or_create("t1")

        check.is_true(registry.remove("t1"))
        check.is_false(registry.remove("t1"))
        check.is_none(registry.get("t1"))

    def test_session_is_immutable(self) -> None:
        session = Session(thread_id="t1")

        with pytest.raises(ValueError):
            session.thread_id = "t2"

    def test_session_rejects_overlong_thread_id(self) -> None:
        with pytest.raises(ValueError):
            Session(thread_id="t" * 101)
