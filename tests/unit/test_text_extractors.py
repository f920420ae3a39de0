"""
Text Extractor Tests
====================

Adapters never raise; malformed input becomes empty text.
"""

import io

import pytest
from docx import Document

from employee_import.ingest.format_router import FileFormat
from employee_import.ingest.text_extractors import extract_docx_text, extract_text


def make_docx() -> bytes:
    document = Document()
    document.add_paragraph("Employee list")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Name"
    table.cell(0, 1).text = "Email"
    table.cell(1, 0).text = "Jane Doe"
    table.cell(1, 1).text = "jane@example.com"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_docx_paragraphs_and_tables():
    text = extract_docx_text(make_docx())

    assert text.splitlines() == ["Employee list", "Name\tEmail", "Jane Doe\tjane@example.com"]


@pytest.mark.parametrize("file_format", [FileFormat.PDF, FileFormat.DOCX, FileFormat.IMAGE])
def test_malformed_input_yields_empty_text(file_format):
    assert extract_text(file_format, b"\x00garbage\x01") == ""


def test_format_without_extractor():
    assert extract_text(FileFormat.UNSUPPORTED, b"anything") == ""
