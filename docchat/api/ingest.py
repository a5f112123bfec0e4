"""Document ingestion endpoint.

Handles multi-file PDF upload, validation, page extraction, and
submission to the upstream knowledge base.
"""

import asyncio
import logging
import os
import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from docchat.api.deps import UpstreamFactory, get_registry, get_upstream_factory
from docchat.api.errors import (
    AppError,
    ProcessingError,
    ServerError,
    ValidationError,
    mark_request_start,
)
from docchat.config import Settings, get_settings
from docchat.models.schemas import ErrorResponse, IngestData, IngestResponse
from docchat.parsing.pdf_parser import MAX_FILE_SIZE, PDFParseError, pdf_to_documents
from docchat.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingest"])

MAX_FILES = 10
ALLOWED_FILE_TYPES = {"application/pdf"}


def format_file_size(num_bytes: int) -> str:
    """Human-readable size, e.g. ``1.5 MB``."""
    if num_bytes == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def validate_file(name: str, content_type: str | None, size: int) -> str | None:
    """Check one upload. Returns the failure reason, or None if it passes."""
    if content_type not in ALLOWED_FILE_TYPES:
        return f"Invalid file type: {content_type}. Only PDF files are allowed."

    if size > MAX_FILE_SIZE:
        return (
            f'File "{name}" is too large ({format_file_size(size)}). '
            f"Maximum size is {format_file_size(MAX_FILE_SIZE)}."
        )

    if size == 0:
        return f'File "{name}" is empty.'

    return None


async def _collect_files(request: Request) -> list[UploadFile]:
    try:
        form = await request.form()
    except Exception as e:
        raise ValidationError(
            "Invalid form data. Please ensure you are uploading files correctly."
        ) from e

    files: list[UploadFile] = []
    names: set[str] = set()
    for key, value in form.multi_items():
        if key != "files" or not isinstance(value, UploadFile):
            continue
        name = value.filename or ""
        if name in names:
            raise ValidationError(
                f'Duplicate file detected: "{name}". '
                "Please rename or remove duplicate files."
            )
        names.add(name)
        files.append(value)

    if not files:
        raise ValidationError(
            "No files provided. Please select at least one PDF file to upload."
        )
    if len(files) > MAX_FILES:
        raise ValidationError(
            f"Too many files uploaded. Maximum {MAX_FILES} files allowed per request."
        )
    return files



def upload_size(file: UploadFile) -> int:
    """Size of an upload in bytes, without reading it into memory."""
    if file.size is not None:
        return file.size
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def check_uploads(files: list[UploadFile]) -> None:
    """Validate every upload by type and size; one failure rejects them all.

    Raises:
        ValidationError: Listing each failing file.
    """
    problems = [
        reason
        for file in files
        if (reason := validate_file(file.filename or "", file.content_type, upload_size(file)))
    ]
    if problems:
        raise ValidationError("File validation failed:\n" + "\n".join(problems))


@router.post(
    "/ingest",
    response_model=IngestResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid upload"},
        408: {"model": ErrorResponse, "description": "Processing timed out"},
        422: {"model": ErrorResponse, "description": "No content extracted"},
        500: {"model": ErrorResponse, "description": "Unexpected failure"},
        503: {"model": ErrorResponse, "description": "Ingestion service unavailable"},
    },
)
async def ingest(
    request: Request,
    settings: Settings = Depends(get_settings),
    upstream_factory: UpstreamFactory = Depends(get_upstream_factory),
    registry: SessionRegistry = Depends(get_registry),
) -> IngestResponse:
    """Ingest one or more PDFs into a new conversation thread.

    Accepts multipart/form-data with one or more ``files`` fields. All
    files are validated before any is processed; a single failing file
    rejects the whole request.

    Raises:
        400: Invalid form, duplicates, too many files, or a file failing validation.
        422: No content could be extracted from any file.
        408: Ingestion exceeded the processing timeout.
        503: Ingestion service missing, misconfigured, or failing.
    """
    mark_request_start(request)
    started_at = time.perf_counter()

    try:
        assistant_id = settings.ingestion_assistant_id
        if not assistant_id:
            raise ProcessingError(
                "Server configuration error: ingestion assistant is not configured",
                status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        files = await _collect_files(request)
        check_uploads(files)

        all_docs: list[dict] = []
        processed_files: list[str] = []
        warnings: list[str] = []
        for file in files:
            name = file.filename or ""
            content = await file.read()
            logger.info(f"Processing file: {name} ({format_file_size(len(content))})")
            try:
                docs = await run_in_threadpool(pdf_to_documents, name, content)
            except PDFParseError as e:
                logger.warning(f"PDF parse error for {name}: {e}")
                warnings.append(f'Failed to process file "{name}": {e}')
                continue

            if not docs:
                warnings.append(
                    f'No content extracted from file: "{name}". '
                    "The file might be corrupted or empty."
                )
                continue

            all_docs.extend(docs)
            processed_files.append(name)
            logger.info(f"Successfully processed {name}: {len(docs)} pages extracted")

        if not all_docs:
            details = "\nDetails:\n" + "\n".join(warnings) if warnings else ""
            raise ProcessingError(
                f"No valid content could be extracted from any uploaded files.{details}",
                422,
            )

        try:
            upstream = upstream_factory()
        except Exception as e:
            logger.error(f"Failed to initialize ingestion service: {e}")
            raise ProcessingError(
                "Failed to initialize document processing service. Please try again later.",
                status.HTTP_503_SERVICE_UNAVAILABLE,
            ) from e

        try:
            session = await registry.create()
        except Exception as e:
            logger.error(f"Failed to create thread: {e}")
            raise ProcessingError(
                "Failed to create processing session. Please try again.",
                status.HTTP_503_SERVICE_UNAVAILABLE,
            ) from e

        try:
            await asyncio.wait_for(
                upstream.ingest_documents(
                    thread_id=session.thread_id,
                    assistant_id=assistant_id,
                    documents=all_docs,
                    config=settings.index_config(),
                ),
                timeout=settings.ingest_timeout_seconds,
            )
        except TimeoutError as e:
            raise ProcessingError(
                "Document processing is taking longer than expected. "
                "Please try with smaller files or contact support.",
                status.HTTP_408_REQUEST_TIMEOUT,
            ) from e
        except Exception as e:
            logger.error(f"Ingestion failed for thread {session.thread_id}: {e}")
            raise ProcessingError(
                "Failed to process documents. The service might be temporarily unavailable.",
                status.HTTP_503_SERVICE_UNAVAILABLE,
            ) from e

    except AppError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during ingestion: {e}")
        raise ServerError(
            "An unexpected error occurred while processing your files.",
            details=str(e),
        ) from e

    processing_time = int((time.perf_counter() - started_at) * 1000)
    logger.info(
        f"Ingestion completed in {processing_time}ms for {len(all_docs)} documents"
    )

    return IngestResponse(
        data=IngestData(
            threadId=session.thread_id,
            filesProcessed=processed_files,
            totalDocuments=len(all_docs),
            processingTimeMs=processing_time,
            warnings=warnings or None,
        )
    )
