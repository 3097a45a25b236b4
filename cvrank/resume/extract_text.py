"""
Document text extraction.

Converts an uploaded résumé (raw bytes plus MIME content type) into
plain text.  PDF files are read with ``pdfplumber``; Word files with
``python-docx``.  The legacy ``application/msword`` type is routed to
the Word decoder as well, so mislabelled ``.docx`` uploads still work;
genuine binary ``.doc`` files cannot be decoded and raise
:class:`~cvrank.errors.ExtractionError`.
"""

from __future__ import annotations

import io
import logging
from typing import List

import docx  # type: ignore
import pdfplumber  # type: ignore

from ..errors import ExtractionError, UnsupportedFormatError

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_CONTENT_TYPES = (PDF_MIME, DOC_MIME, DOCX_MIME)

# File extension -> content type, for callers that only know a filename.
EXTENSION_CONTENT_TYPES = {
    ".pdf": PDF_MIME,
    ".doc": DOC_MIME,
    ".docx": DOCX_MIME,
}


def _base_content_type(content_type: str) -> str:
    # "application/pdf; charset=binary" -> "application/pdf"
    return (content_type or "").split(";", 1)[0].strip().lower()


def extract_text_from_pdf(data: bytes) -> str:
    """Extract the text of every page of a PDF, one page per line block.

    Raises:
        ExtractionError: If pdfplumber cannot open or read the document.
    """
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages: List[str] = [page.extract_text() or "" for page in pdf.pages]
    except Exception as exc:  # noqa: BLE001
        logger.debug("pdfplumber failed: %s", exc)
        raise ExtractionError("Failed to parse PDF file") from exc
    return "\n".join(pages)


def extract_text_from_word(data: bytes) -> str:
    """Extract paragraph and table text from a Word document.

    Raises:
        ExtractionError: If python-docx cannot read the document.
    """
    try:
        document = docx.Document(io.BytesIO(data))
        lines = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                lines.append("\t".join(cell.text for cell in row.cells))
    except Exception as exc:  # noqa: BLE001
        logger.debug("python-docx failed: %s", exc)
        raise ExtractionError("Failed to parse Word document") from exc
    return "\n".join(lines)


class DocumentTextExtractor:
    """Dispatch a document to the decoder for its content type."""

    def extract(self, data: bytes, content_type: str) -> str:
        """Return the plain text of ``data``.

        Args:
            data: Raw document bytes.
            content_type: MIME type of the document.

        Raises:
            UnsupportedFormatError: For anything other than PDF or Word.
            ExtractionError: If the decoder fails on the bytes.
        """
        kind = _base_content_type(content_type)
        if kind not in SUPPORTED_CONTENT_TYPES:
            raise UnsupportedFormatError(content_type)
        if kind == PDF_MIME:
            text = extract_text_from_pdf(data)
        else:
            text = extract_text_from_word(data)
        logger.debug("Extracted %d characters from %s document", len(text), kind)
        return text
