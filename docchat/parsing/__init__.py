"""PDF parsing utilities for document ingestion.

Responsibilities:
    - PDF validation (header, size, empty files)
    - Per-page text extraction with pypdf
    - Metadata extraction (title, author, creation date)
    - Page documents in the ``{pageContent, metadata}`` shape the
      ingestion service and the chat citations share
"""

from docchat.parsing.pdf_parser import (
    MAX_FILE_SIZE,
    PDFContent,
    PDFParseError,
    parse_pdf,
    pdf_to_documents,
)

__all__ = ["MAX_FILE_SIZE", "PDFContent", "PDFParseError", "parse_pdf", "pdf_to_documents"]
