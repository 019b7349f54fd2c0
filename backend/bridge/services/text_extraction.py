# bridge/services/text_extraction.py
"""PyMuPDF (fitz) text extraction for digital PDFs"""
import asyncio
import time
from dataclasses import dataclass

import fitz  # PyMuPDF

from bridge.errors import ExtractionError
from bridge.utils.logging import logger


@dataclass(frozen=True)
class ExtractedText:
    text: str
    page_count: int


async def extract_pdf_text(data: bytes, min_chars: int = 20) -> ExtractedText:
    """Extract text page by page without blocking the event loop.

    Pages are read in order and joined with a blank line. The CPU-bound loop
    runs in a worker thread via asyncio.to_thread.

    Raises:
        ExtractionError: unreadable PDF, or too little text (image-only/scanned PDF)
    """
    start_time = time.time()

    def _sync_extract():
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            page_count_local = len(doc)
            text_parts = []
            for page_num in range(page_count_local):
                page = doc[page_num]
                text_parts.append(page.get_text())
            full_text_local = "\n\n".join(text_parts)
        finally:
            doc.close()
        return full_text_local, page_count_local

    try:
        full_text, page_count = await asyncio.to_thread(_sync_extract)
    except (RuntimeError, ValueError) as e:  # fitz.FileDataError is a RuntimeError
        logger.warning(f"PDF could not be opened: {e}", extra={"size": len(data)})
        raise ExtractionError(f"Failed to parse PDF: {e}") from e

    if len(full_text.strip()) < min_chars:
        logger.info(
            "PDF has no extractable text",
            extra={"pages": page_count, "chars": len(full_text.strip())}
        )
        raise ExtractionError(
            "Could not extract text from PDF - document may be image-based. "
            "Upload a photo (JPEG or PNG) of the pages instead."
        )

    logger.info(
        "PDF text extracted",
        extra={
            "pages": page_count,
            "chars": len(full_text),
            "elapsed_ms": int((time.time() - start_time) * 1000),
        }
    )
    return ExtractedText(text=full_text, page_count=page_count)
