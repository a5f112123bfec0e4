"""Integration tests for the PDF ingestion endpoint.

Uploads in-memory PDFs through the FastAPI app; the upstream knowledge
base is the fake from conftest.
"""

import io
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
import pytest_check as check
from httpx import AsyncClient
from starlette.datastructures import Headers, UploadFile

from docchat.api.errors import ValidationError
from docchat.api.ingest import check_uploads, format_file_size, upload_size, validate_file
from docchat.config import Settings
from docchat.parsing.pdf_parser import MAX_FILE_SIZE
from docchat.sessions.registry import SessionRegistry
from tests.conftest import FakeUpstream

PDF = "application/pdf"


def upload(*files: tuple[str, bytes, str]) -> list[tuple[str, tuple[str, bytes, str]]]:
    return [("files", file) for file in files]


class TestValidateFile:
    """Tests for per-file validation rules."""

    def test_accepts_pdf_within_limit(self) -> None:
        check.is_none(validate_file("a.pdf", PDF, MAX_FILE_SIZE))

    def test_rejects_other_content_types(self) -> None:
        check.equal(
            validate_file("a.txt", "text/plain", 10),
            "Invalid file type: text/plain. Only PDF files are allowed.",
        )

    def test_rejects_oversized_file(self) -> None:
        check.equal(
            validate_file("big.pdf", PDF, MAX_FILE_SIZE + 1),
            'File "big.pdf" is too large (50 MB). Maximum size is 50 MB.',
        )

    def test_rejects_empty_file(self) -> None:
        check.equal(validate_file("a.pdf", PDF, 0), 'File "a.pdf" is empty.')

    @pytest.mark.parametrize(
        ("size", "expected"),
        [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (MAX_FILE_SIZE, "50 MB")],
    )
    def test_format_file_size(self, size: int, expected: str) -> None:
        check.equal(format_file_size(size), expected)


def make_upload(name: str, content: bytes, size: int | None, content_type: str = PDF) -> UploadFile:
    return UploadFile(
        io.BytesIO(content),
        size=size,
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


class TestCheckUploads:
    """Tests for batch validation before any file is read."""

    def test_uses_reported_size_without_reading(self) -> None:
        big = make_upload("big.pdf", b"%PDF-1.4", size=MAX_FILE_SIZE + 1)
        small = make_upload("small.pdf", b"%PDF-1.4", size=8)
        big.read = AsyncMock()
        small.read = AsyncMock()

        with pytest.raises(ValidationError, match="big.pdf"):
            check_uploads([small, big])

        big.read.assert_not_awaited()
        small.read.assert_not_awaited()

    def test_measures_size_when_unreported(self) -> None:
        upload_file = make_upload("a.pdf", b"%PDF-1.4 body", size=None)

        check.equal(upload_size(upload_file), 13)
        check.equal(upload_file.file.tell(), 0)

    def test_accepts_valid_batch(self) -> None:
        check.is_none(check_uploads([make_upload("a.pdf", b"%PDF", size=4)]))


class TestIngestSuccess:
    """Tests for accepted uploads."""

    async def test_ingests_all_pages_into_new_thread(
        self,
        async_client: AsyncClient,
        fake_upstream: FakeUpstream,
        registry: SessionRegistry,
        make_pdf: Callable[..., bytes],
    ) -> None:
        response = await async_client.post(
            "/ingest",
            files=upload(
                ("guide.pdf", make_pdf("Chapter one", "Chapter two"), PDF),
                ("notes.pdf", make_pdf("Meeting notes"), PDF),
            ),
        )

        check.equal(response.status_code, 200)
        body = response.json()
        check.is_true(body["success"])
        check.equal(body["message"], "Documents processed successfully")
        data = body["data"]
        check.equal(data["filesProcessed"], ["guide.pdf", "notes.pdf"])
        check.equal(data["totalDocuments"], 3)
        check.greater_equal(data["processingTimeMs"], 0)
        check.is_not_in("warnings", data)
        check.is_in(data["threadId"], registry)

        call = fake_upstream.ingest_calls[0]
        check.equal(call["thread_id"], data["threadId"])
        check.equal(call["assistant_id"], "ingestion-graph")
        check.equal(call["documents"][2]["metadata"]["source"], "notes.pdf")

    async def test_unreadable_file_becomes_warning(
        self,
        async_client: AsyncClient,
        make_pdf: Callable[..., bytes],
    ) -> None:
        response = await async_client.post(
            "/ingest",
            files=upload(
                ("good.pdf", make_pdf("Readable"), PDF),
                ("scan.pdf", make_pdf(""), PDF),
                ("fake.pdf", b"not really a pdf", PDF),
            ),
        )

        check.equal(response.status_code, 200)
        data = response.json()["data"]
        check.equal(data["filesProcessed"], ["good.pdf"])
        check.equal(len(data["warnings"]), 2)
        check.is_in('"scan.pdf"', data["warnings"][0])
        check.is_in('"fake.pdf"', data["warnings"][1])


class TestIngestRejection:
    """Tests for uploads rejected before anything is processed."""

    async def test_one_oversized_file_rejects_batch(
        self,
        async_client: AsyncClient,
        fake_upstream: FakeUpstream,
        make_pdf: Callable[..., bytes],
    ) -> None:
        files = [(f"doc{i}.pdf", make_pdf(f"Document {i}"), PDF) for i in range(9)]
        files.append(("big.pdf", b"%PDF-1.4" + b"\x00" * (MAX_FILE_SIZE + 1 - 8), PDF))

        response = await async_client.post("/ingest", files=upload(*files))

        check.equal(response.status_code, 400)
        body = response.json()
        check.equal(body["type"], "validation_error")
        check.is_true(body["error"].startswith("File validation failed:\n"))
        check.is_in('"big.pdf"', body["error"])
        check.is_not_in("doc0.pdf", body["error"])
        check.equal(fake_upstream.ingest_calls, [])
        check.equal(fake_upstream.threads_created, 0)

    async def test_every_failing_file_reported(
        self, async_client: AsyncClient, make_pdf: Callable[..., bytes]
    ) -> None:
        response = await async_client.post(
            "/ingest",
            files=upload(
                ("a.txt", b"hello", "text/plain"),
                ("ok.pdf", make_pdf("Fine"), PDF),
                ("empty.pdf", b"", PDF),
            ),
        )

        error = response.json()["error"]
        check.equal(response.status_code, 400)
        check.is_in("Invalid file type: text/plain", error)
        check.is_in('File "empty.pdf" is empty.', error)
        check.is_not_in("ok.pdf", error)

    async def test_duplicate_names(
        self, async_client: AsyncClient, make_pdf: Callable[..., bytes]
    ) -> None:
        pdf = make_pdf("Same")

        response = await async_client.post(
            "/ingest", files=upload(("a.pdf", pdf, PDF), ("a.pdf", pdf, PDF))
        )

        check.equal(response.status_code, 400)
        check.is_in('Duplicate file detected: "a.pdf"', response.json()["error"])

    async def test_too_many_files(
        self, async_client: AsyncClient, make_pdf: Callable[..., bytes]
    ) -> None:
        pdf = make_pdf("Page")
        files = [(f"doc{i}.pdf", pdf, PDF) for i in range(11)]

        response = await async_client.post("/ingest", files=upload(*files))

        check.equal(response.status_code, 400)
        check.equal(
            response.json()["error"],
            "Too many files uploaded. Maximum 10 files allowed per request.",
        )

    async def test_no_files(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/ingest", data={"comment": "nothing attached"})

        check.equal(response.status_code, 400)
        check.is_in("No files provided", response.json()["error"])


class TestIngestProcessingFailures:
    """Tests for failures after validation."""

    async def test_no_extractable_content_is_422(
        self,
        async_client: AsyncClient,
        fake_upstream: FakeUpstream,
        make_pdf: Callable[..., bytes],
    ) -> None:
        response = await async_client.post(
            "/ingest", files=upload(("scan.pdf", make_pdf("", ""), PDF))
        )

        body = response.json()
        check.equal(response.status_code, 422)
        check.equal(body["type"], "processing_error")
        check.is_in("No valid content could be extracted", body["error"])
        check.equal(fake_upstream.ingest_calls, [])

    async def test_timeout_is_408(
        self,
        async_client: AsyncClient,
        settings: Settings,
        fake_upstream: FakeUpstream,
        make_pdf: Callable[..., bytes],
    ) -> None:
        settings.ingest_timeout_seconds = 0.05
        fake_upstream.ingest_delay = 1.0

        response = await async_client.post("/ingest", files=upload(("a.pdf", make_pdf("Text"), PDF)))

        check.equal(response.status_code, 408)
        check.equal(response.json()["type"], "processing_error")

    async def test_upstream_failure_is_503(
        self,
        async_client: AsyncClient,
        fake_upstream: FakeUpstream,
        make_pdf: Callable[..., bytes],
    ) -> None:
        fake_upstream.ingest_error = RuntimeError("vector store offline")

        response = await async_client.post("/ingest", files=upload(("a.pdf", make_pdf("Text"), PDF)))

        check.equal(response.status_code, 503)
        check.is_not_in("details", response.json())

    async def test_unconfigured_assistant_is_503(
        self,
        async_client: AsyncClient,
        settings: Settings,
        make_pdf: Callable[..., bytes],
    ) -> None:
        settings.ingestion_assistant_id = None

        response = await async_client.post("/ingest", files=upload(("a.pdf", make_pdf("Text"), PDF)))

        check.equal(response.status_code, 503)
        check.equal(response.json()["type"], "processing_error")
