"""
Ingest
======

Format routing, tabular parsers and text extraction adapters.
"""

from employee_import.ingest.csv_parser import CsvParser, CsvTable
from employee_import.ingest.excel_strategy import ExcelStrategy, SheetParseResult
from employee_import.ingest.format_router import FileFormat, require_supported, resolve_format

__all__ = [
    "CsvParser",
    "CsvTable",
    "ExcelStrategy",
    "FileFormat",
    "SheetParseResult",
    "require_supported",
    "resolve_format",
]
