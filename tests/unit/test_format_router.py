"""
Format Router Tests
===================

MIME-first resolution with extension fallback.
"""

import pytest

from employee_import.ingest.format_router import FileFormat, require_supported, resolve_format
from employee_import.utils.errors import UnsupportedFormatError


class TestResolveFormat:
    @pytest.mark.parametrize(
        "file_name,mime_type,expected",
        [
            ("staff.csv", "text/csv", FileFormat.CSV),
            (
                "staff.xlsx",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                FileFormat.EXCEL,
            ),
            ("staff.xls", "application/vnd.ms-excel", FileFormat.EXCEL),
            ("staff.pdf", "application/pdf", FileFormat.PDF),
            (
                "staff.docx",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                FileFormat.DOCX,
            ),
            ("scan.png", "image/png", FileFormat.IMAGE),
        ],
    )
    def test_mime_type_match(self, file_name, mime_type, expected):
        assert resolve_format(file_name, mime_type) == expected

    def test_mime_type_wins_over_extension(self):
        assert resolve_format("staff.pdf", "text/csv") == FileFormat.CSV

    @pytest.mark.parametrize(
        "file_name,expected",
        [
            ("staff.CSV", FileFormat.CSV),
            ("Staff.XLSX", FileFormat.EXCEL),
            ("scan.JPEG", FileFormat.IMAGE),
            ("letter.Docx", FileFormat.DOCX),
        ],
    )
    def test_extension_fallback_is_case_insensitive(self, file_name, expected):
        assert resolve_format(file_name, "application/octet-stream") == expected
        assert resolve_format(file_name, "") == expected
        assert resolve_format(file_name, None) == expected

    def test_unknown_input_resolves_to_unsupported(self):
        assert resolve_format("notes.txt", "text/plain") == FileFormat.UNSUPPORTED
        assert resolve_format("", "") == FileFormat.UNSUPPORTED

    def test_tabular_formats(self):
        assert FileFormat.CSV.is_tabular
        assert FileFormat.EXCEL.is_tabular
        assert not FileFormat.PDF.is_tabular


class TestRequireSupported:
    def test_returns_format(self):
        assert require_supported("staff.csv", "") == FileFormat.CSV

    def test_raises_for_unsupported(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            require_supported("notes.txt", "text/plain")

        assert "Unsupported file type" in exc_info.value.message
        assert "csv" in exc_info.value.details["supported_extensions"]
