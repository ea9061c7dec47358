"""PDF text extraction for document analysis."""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from core.errors import InputValidationError

logger = logging.getLogger(__name__)


def extract_text_from_pdf(data: bytes) -> str:
    """Return the text of every page, each prefixed with a ``[Page n]`` marker.

    Raises:
        InputValidationError: If the file is not a readable, text-based PDF.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        page_texts = [(page.extract_text() or "").strip() for page in reader.pages]
    except (PdfReadError, ValueError, OSError) as exc:
        logger.warning("PDF extraction failed: %s", exc)
        raise InputValidationError(
            "Failed to parse PDF file. Ensure it is a valid text-based PDF."
        ) from exc

    if not any(page_texts):
        raise InputValidationError(
            "The PDF contains no extractable text. Scanned documents are not supported."
        )

    return "\n".join(
        f"[Page {number}]\n{text}\n" for number, text in enumerate(page_texts, start=1)
    )
