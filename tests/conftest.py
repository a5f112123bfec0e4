"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - settings: Settings with both assistants configured, production mode
    - fake_upstream: In-memory stand-in for AgentService
    - registry: SessionRegistry backed by the fake upstream
    - app: FastAPI app with dependencies pointed at the fixtures above
    - async_client: HTTPX client for API testing
    - make_pdf: Builds small, valid text PDFs in memory
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

import docchat.config as config_module
from docchat.api.app import create_app
from docchat.api.deps import get_registry, get_upstream_factory
from docchat.config import Settings, get_settings
from docchat.models.schemas import ThreadHandle, UpstreamEvent
from docchat.sessions.registry import SessionRegistry


class FakeUpstream:
    """Scriptable upstream service.

    Attributes:
        events: Events yielded by every opened run stream.
        open_error: Raised by ``open_run_stream`` when set.
        fail_after: Raise ``stream_error`` after yielding this many events.
        ingest_error: Raised by ``ingest_documents`` when set.
        ingest_delay: Seconds ``ingest_documents`` sleeps before returning.
    """

    def __init__(self) -> None:
        self.events: list[Any] = []
        self.open_error: Exception | None = None
        self.fail_after: int | None = None
        self.stream_error: Exception = RuntimeError("upstream went away")
        self.ingest_error: Exception | None = None
        self.ingest_delay = 0.0

        self.open_calls: list[dict[str, Any]] = []
        self.ingest_calls: list[dict[str, Any]] = []
        self.threads_created = 0
        self.streams_closed = 0

    async def create_thread(self) -> ThreadHandle:
        self.threads_created += 1
        return ThreadHandle(thread_id=f"thread-{uuid.uuid4().hex[:8]}")

    async def open_run_stream(
        self,
        thread_id: str,
        assistant_id: str,
        query: str,
        config: dict[str, Any] | None = None,
    ) -> AsyncGenerator[Any]:
        self.open_calls.append(
            {"thread_id": thread_id, "assistant_id": assistant_id, "query": query, "config": config}
        )
        if self.open_error is not None:
            raise self.open_error
        return self._stream()

    async def _stream(self) -> AsyncGenerator[Any]:
        try:
            for i, event in enumerate(self.events):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.stream_error
                yield event
        finally:
            self.streams_closed += 1

    async def ingest_documents(
        self,
        thread_id: str,
        assistant_id: str,
        documents: list[dict[str, Any]],
        config: dict[str, Any] | None = None,
    ) -> int:
        self.ingest_calls.append(
            {"thread_id": thread_id, "assistant_id": assistant_id, "documents": documents}
        )
        if self.ingest_delay:
            await asyncio.sleep(self.ingest_delay)
        if self.ingest_error is not None:
            raise self.ingest_error
        return len(documents)


def partial(text: str) -> UpstreamEvent:
    return UpstreamEvent(event="messages/partial", data=[{"type": "ai", "content": text}])


def retrieval(*sources: tuple[str, int]) -> UpstreamEvent:
    documents = [
        {"pageContent": f"excerpt from {name}", "metadata": {"source": name, "loc": {"pageNumber": page}}}
        for name, page in sources
    ]
    return UpstreamEvent(event="updates", data={"retrieveDocuments": {"documents": documents}})


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Production-mode settings with both assistants configured."""
    value = Settings(
        environment="production",
        retrieval_assistant_id="retrieval-graph",
        ingestion_assistant_id="ingestion-graph",
        ingest_timeout_seconds=5.0,
    )
    monkeypatch.setattr(config_module, "_settings", value)
    return value


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def registry(fake_upstream: FakeUpstream) -> SessionRegistry:
    return SessionRegistry(lambda: fake_upstream)


@pytest.fixture
def app(settings: Settings, fake_upstream: FakeUpstream, registry: SessionRegistry) -> FastAPI:
    """Application wired to the fake upstream."""
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_upstream_factory] = lambda: lambda: fake_upstream
    application.dependency_overrides[get_registry] = lambda: registry
    return application


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def build_pdf(*page_texts: str, author: str | None = None) -> bytes:
    """Build a PDF with one Helvetica text line per page.

    An empty string produces a page without text.
    """
    objects: list[bytes] = []
    page_count = len(page_texts)
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(page_count))

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode())
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    for i, text in enumerate(page_texts):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                "/Resources << /Font << /F1 3 0 R >> >> "
                f"/Contents {5 + 2 * i} 0 R >>"
            ).encode()
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode() if text else b""
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode() + stream + b"\nendstream"
        )

    info_ref = ""
    if author is not None:
        objects.append(f"<< /Author ({author}) >>".encode())
        info_ref = f" /Info {len(objects)} 0 R"

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R{info_ref} >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()
    return bytes(out)


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    return build_pdf
