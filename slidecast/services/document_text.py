import logging
import re
from dataclasses import dataclass

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


@dataclass
class DocumentText:
    text: str
    page_count: int = 0


def pdf_bytes_to_text(data: bytes) -> DocumentText:
    """
    Extract plain text from PDF bytes.

    Unreadable documents yield empty text rather than an error; the caller
    decides whether empty text is fatal.
    """
    if not data:
        return DocumentText(text="", page_count=0)

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        logger.warning(f"Could not open PDF ({len(data)} bytes): {e}")
        return DocumentText(text="", page_count=0)

    pages = []
    try:
        for page_num in range(len(doc)):
            pages.append(doc[page_num].get_text("text"))
        page_count = len(doc)
    finally:
        doc.close()

    text = "\n\n".join(pages)
    text = text.replace("\r\n", "\n").replace("\u00a0", " ")
    text = re.sub(r"\n{3,}", "\n\n", text).strip()

    logger.info(f"Extracted {len(text)} characters from {page_count} pages")
    return DocumentText(text=text, page_count=page_count)


def sanitize_and_clamp(text: str, max_chars: int) -> str:
    cleaned = (text or "").replace("\r\n", "\n")
    cleaned = re.sub(r"[ \t]{2,}", " ", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned[:max_chars]
