from __future__ import annotations

import logging

import fitz  # type: ignore

logger = logging.getLogger(__name__)


def extract_pdf_text(content: bytes) -> str:
    """Plain text of every page, in page order. Blocking; run off the event loop."""
    parts = []
    with fitz.open(stream=content, filetype="pdf") as doc:
        for page in doc:
            text = (page.get_text("text") or "").strip()
            if text:
                parts.append(text)
        logger.debug(f"Extracted text from {doc.page_count} pages")
    return "\n\n".join(parts)
