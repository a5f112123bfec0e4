"""Page extraction for uploaded PDFs.

Each PDF becomes a list of pages; every page with text turns into one
``{pageContent, metadata}`` document for the knowledge base. Pages are
numbered from 1, which is what the chat citations display.
"""

import io
import logging
from typing import Any

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
PDF_MAGIC_BYTES = b"%PDF"

# Document info keys we keep, and their names in PDFContent.metadata.
_INFO_FIELDS = {
    "/Title": "title",
    "/Author": "author",
    "/Subject": "subject",
    "/Creator": "creator",
    "/CreationDate": "creation_date",
}


class PDFPage(BaseModel):
    """Text of a single page."""

    number: int = Field(ge=1)
    text: str = ""

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class PDFContent(BaseModel):
    """Pages and document info of a parsed PDF.

    Attributes:
        page_list: Pages in document order, including those without text.
        metadata: Document info fields that were present (title, author, ...).
    """

    page_list: list[PDFPage]
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def pages(self) -> int:
        return len(self.page_list)

    @property
    def page_texts(self) -> list[str]:
        return [page.text for page in self.page_list]

    @property
    def text(self) -> str:
        return "\n\n".join(page.text for page in self.page_list if page.text)


class PDFParseError(Exception):
    """Raised when a file cannot be read as a PDF."""


def _check_bytes(file_content: bytes) -> None:
    if not file_content:
        raise PDFParseError("Empty file provided")

    if len(file_content) > MAX_FILE_SIZE:
        size_mb = len(file_content) / (1024 * 1024)
        raise PDFParseError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (50MB)")

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFParseError("Invalid PDF: file does not start with PDF header")


def _read_info(reader: PdfReader) -> dict[str, str]:
    try:
        info = reader.metadata
    except Exception as e:
        logger.warning(f"Unreadable document info: {e}")
        return {}
    if not info:
        return {}

    found: dict[str, str] = {}
    for key, name in _INFO_FIELDS.items():
        value = info.get(key)
        if value:
            found[name] = str(value)
    return found


def _page_text(page: Any, number: int) -> str:
    try:
        return page.extract_text() or ""
    except Exception as e:
        logger.warning(f"Text extraction failed on page {number}: {e}")
        return ""


def parse_pdf(file_content: bytes) -> PDFContent:
    """Read every page of a PDF.

    Args:
        file_content: Raw bytes of the upload.

    Returns:
        PDFContent with one entry per page and the document info.

    Raises:
        PDFParseError: Empty, oversized, not a PDF, corrupt, or no pages.
    """
    _check_bytes(file_content)

    try:
        reader = PdfReader(io.BytesIO(file_content))
        raw_pages = list(reader.pages)
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if not raw_pages:
        raise PDFParseError("PDF contains no pages")

    content = PDFContent(
        page_list=[
            PDFPage(number=number, text=_page_text(page, number))
            for number, page in enumerate(raw_pages, start=1)
        ],
        metadata=_read_info(reader),
    )
    if not any(page.has_text for page in content.page_list):
        logger.warning("PDF has no extractable text (scanned or image-only?)")
    return content


def pdf_to_documents(filename: str, file_content: bytes) -> list[dict[str, Any]]:
    """Split a PDF into one ``{pageContent, metadata}`` document per text page.

    Raises:
        PDFParseError: If the file cannot be parsed.
    """
    content = parse_pdf(file_content)

    shared: dict[str, Any] = {"source": filename, "pageCount": content.pages}
    if author := content.metadata.get("author"):
        shared["author"] = author
    if created := content.metadata.get("creation_date"):
        shared["publishedDate"] = created

    return [
        {
            "pageContent": page.text,
            "metadata": {**shared, "loc": {"pageNumber": page.number}},
        }
        for page in content.page_list
        if page.has_text
    ]
