"""
Text extraction from uploaded documents and downloaded PDFs.
"""

import io
import logging
from typing import Optional

import PyPDF2

logger = logging.getLogger(__name__)


def extract_pdf_text(data: bytes) -> Optional[str]:
    """
    Extract text from PDF bytes with PyPDF2.

    Returns:
        Concatenated page text, or None if the PDF has no extractable text
        or cannot be read
    """
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(data))
        pages = []
        for page_num, page in enumerate(reader.pages, 1):
            extracted = page.extract_text()
            if extracted:
                pages.append(extracted)
            else:
                logger.debug(f"No text found on PDF page {page_num}")
    except Exception as e:
        logger.warning(f"Failed to read PDF: {e}")
        return None

    text = "\n".join(pages)
    if not text.strip():
        logger.warning("No extractable text found in PDF")
        return None
    return text


def load_document_text(filename: Optional[str], data: bytes) -> str:
    """
    Read an uploaded document into text.

    ``.pdf`` files go through PyPDF2; anything else is decoded as UTF-8,
    ignoring undecodable bytes.

    Args:
        filename: Original upload name (used only for the extension)
        data: File contents

    Returns:
        Extracted text ("" when nothing could be read)
    """
    if filename and filename.lower().endswith(".pdf"):
        return extract_pdf_text(data) or ""
    return data.decode("utf-8", errors="ignore")
