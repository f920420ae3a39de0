"""
Excel Strategy - Spreadsheet Parser
===================================

Reads the first worksheet of an Excel upload and maps it through the same
header registry as the CSV parser.

Uses pandas (openpyxl engine) for reading. When no header cell is
recognised, the sheet is rendered as tab-separated text so the caller can
route it through AI extraction instead.
"""

import io
from dataclasses import dataclass, field

import pandas as pd

from employee_import.ingest.column_mapping import map_headers
from employee_import.schemas.domain import RawRow
from employee_import.utils.errors import ParseError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SheetParseResult:
    """Outcome of reading one worksheet."""

    sheet_name: str
    headers: list[str]
    mapped_columns: list[str]
    rows: list[RawRow] = field(default_factory=list)
    text: str = ""

    @property
    def has_mapped_columns(self) -> bool:
        return bool(self.mapped_columns)


class ExcelStrategy:
    """
    Spreadsheet parsing strategy.

    Usage:
        result = ExcelStrategy().parse(file_bytes)
        if result.has_mapped_columns:
            candidates = result.rows
        else:
            text = result.text  # hand over to AI extraction
    """

    def __init__(self, sheet_name: str | int = 0) -> None:
        self._sheet_name = sheet_name

    def _read_frame(self, data: bytes) -> tuple[str, pd.DataFrame]:
        try:
            sheets = pd.read_excel(
                io.BytesIO(data),
                sheet_name=None,
                header=None,
                dtype=str,
            )
        except Exception as e:
            raise ParseError(
                message=f"Failed to parse Excel file: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        if not sheets:
            raise ParseError(message="No worksheet found in Excel file")

        if isinstance(self._sheet_name, int):
            names = list(sheets)
            if self._sheet_name >= len(names):
                raise ParseError(
                    message=f"Worksheet index {self._sheet_name} out of range",
                    details={"sheets": names},
                )
            name = names[self._sheet_name]
        else:
            name = self._sheet_name
            if name not in sheets:
                raise ParseError(
                    message=f"Worksheet not found: {name}",
                    details={"sheets": list(sheets)},
                )

        frame = sheets[name].fillna("").astype(str)
        return str(name), frame

    def parse(self, data: bytes) -> SheetParseResult:
        """
        Parse workbook bytes into candidate rows.

        Raises:
            ParseError: If the workbook cannot be read
        """
        sheet_name, frame = self._read_frame(data)

        records = [[cell.strip() for cell in row] for row in frame.values.tolist()]
        records = [row for row in records if any(row)]

        if not records:
            logger.info("Excel sheet is empty", sheet_name=sheet_name)
            return SheetParseResult(sheet_name=sheet_name, headers=[], mapped_columns=[])

        headers = records[0]
        fields = map_headers(headers)
        result = SheetParseResult(
            sheet_name=sheet_name,
            headers=headers,
            mapped_columns=[f for f in fields if f is not None],
            text="\n".join("\t".join(row) for row in records),
        )

        for row_number, cells in enumerate(records[1:], start=1):
            values = {
                field_name: cells[index]
                for index, field_name in enumerate(fields)
                if field_name is not None and index < len(cells) and cells[index]
            }
            row = RawRow(row_number=row_number, values=values, cell_count=len(cells))
            if row.has_identity():
                result.rows.append(row)

        logger.info(
            "Excel parse completed",
            sheet_name=sheet_name,
            data_rows=len(records) - 1,
            candidate_rows=len(result.rows),
            mapped_columns=result.mapped_columns,
        )
        return result
