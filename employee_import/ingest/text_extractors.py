"""
Text Extraction Adapters
========================

Best-effort bytes -> plain text for unstructured uploads.

Contract:
    - Never raise on malformed input; log and return "" instead
    - Empty text is a valid result meaning "no employees found"

Backends:
    - PDF: pymupdf document opened from memory, rendered with pymupdf4llm
    - DOCX: python-docx paragraphs and table cells
    - Image: pytesseract OCR over a Pillow image
"""

import io
from typing import Callable

import pymupdf
import pymupdf4llm
import pytesseract
from docx import Document
from PIL import Image

from employee_import.ingest.format_router import FileFormat
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)


def extract_pdf_text(data: bytes) -> str:
    """Render every PDF page as Markdown (tables preserved as pipe tables)."""
    try:
        with pymupdf.open(stream=data, filetype="pdf") as doc:
            text = pymupdf4llm.to_markdown(doc)
    except Exception as e:
        logger.warning("PDF text extraction failed", error=str(e))
        return ""
    return text.strip()


def extract_docx_text(data: bytes) -> str:
    """Join paragraphs, then table rows as tab-separated lines."""
    try:
        document = Document(io.BytesIO(data))
    except Exception as e:
        logger.warning("DOCX text extraction failed", error=str(e))
        return ""

    lines = [p.text.strip() for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append("\t".join(cells))
    return "\n".join(lines)


def extract_image_text(data: bytes) -> str:
    """OCR an uploaded image."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            text = pytesseract.image_to_string(image)
    except Exception as e:
        logger.warning("Image OCR failed", error=str(e))
        return ""
    return text.strip()


_EXTRACTORS: dict[FileFormat, Callable[[bytes], str]] = {
    FileFormat.PDF: extract_pdf_text,
    FileFormat.DOCX: extract_docx_text,
    FileFormat.IMAGE: extract_image_text,
}


def extract_text(file_format: FileFormat, data: bytes) -> str:
    """
    Extract text for a non-tabular format.

    Formats without an adapter yield "" rather than raising.
    """
    extractor = _EXTRACTORS.get(file_format)
    if extractor is None:
        logger.warning("No text extractor for format", file_format=file_format.value)
        return ""

    text = extractor(data)
    logger.info(
        "Text extracted",
        file_format=file_format.value,
        chars=len(text),
        empty=not text,
    )
    return text
