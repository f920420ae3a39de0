"""
CSV Parser
==========

Line-oriented CSV reader with header-synonym mapping.

Semantics (shared by upload parsing, preview and commit):
- Split on newlines, drop blank lines
- First remaining line is the header row
- Cells are split on the delimiter, trimmed and stripped of double quotes
- Unrecognised headers are ignored
"""

from dataclasses import dataclass, field

from employee_import.ingest.column_mapping import map_headers
from employee_import.schemas.domain import RawRow
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)


def _split_cells(line: str, delimiter: str) -> list[str]:
    return [cell.strip().replace('"', "") for cell in line.split(delimiter)]


@dataclass
class CsvTable:
    """Header row plus every data row, before candidate filtering."""

    headers: list[str]
    fields: list[str | None]
    rows: list[RawRow] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        """Canonical fields recognised in the header row, in column order."""
        return [f for f in self.fields if f is not None]


class CsvParser:
    """
    Parser for employee CSV uploads.

    Usage:
        parser = CsvParser()
        rows = parser.parse(file_bytes)        # candidate rows only
        table = parser.read_table(csv_text)    # every row, for preview/commit
    """

    def __init__(self, delimiter: str = ",", encoding: str = "utf-8") -> None:
        self._delimiter = delimiter
        self._encoding = encoding

    def decode(self, data: bytes) -> str:
        """Decode bytes, tolerating a BOM and stray invalid sequences."""
        encoding = "utf-8-sig" if self._encoding.lower() in ("utf-8", "utf8") else self._encoding
        return data.decode(encoding, errors="replace")

    def read_table(self, text: str) -> CsvTable:
        """
        Split CSV text into a header row and mapped data rows.

        Every non-blank data row is returned, including rows that would not
        become candidates, so callers can report on them.
        """
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            return CsvTable(headers=[], fields=[])

        headers = _split_cells(lines[0], self._delimiter)
        fields = map_headers(headers)
        table = CsvTable(headers=headers, fields=fields)

        for row_number, line in enumerate(lines[1:], start=1):
            cells = _split_cells(line, self._delimiter)
            values: dict[str, str] = {}
            for index, field_name in enumerate(fields):
                if field_name is None:
                    continue
                value = cells[index] if index < len(cells) else ""
                if value:
                    values[field_name] = value
            table.rows.append(RawRow(row_number=row_number, values=values, cell_count=len(cells)))

        logger.debug(
            "CSV table read",
            headers=headers,
            mapped_columns=table.columns,
            row_count=len(table.rows),
        )
        return table

    def parse_text(self, text: str) -> list[RawRow]:
        """Return candidate rows: those with a first name or an email."""
        table = self.read_table(text)
        candidates = [row for row in table.rows if row.has_identity()]

        logger.info(
            "CSV parse completed",
            total_rows=len(table.rows),
            candidate_rows=len(candidates),
            dropped_rows=len(table.rows) - len(candidates),
        )
        return candidates

    def parse(self, data: bytes) -> list[RawRow]:
        return self.parse_text(self.decode(data))
