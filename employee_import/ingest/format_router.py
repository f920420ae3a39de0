"""
Format Router - Strategy Selection
==================================

Selects the extraction strategy for an upload from its MIME type and
file name. Resolution is a total function: every input maps to a member
of ``FileFormat``, with ``UNSUPPORTED`` as the explicit fallthrough.

Precedence: MIME type first, then the (case-insensitive) file extension.
"""

from enum import Enum
from pathlib import PurePath

from employee_import.utils.errors import UnsupportedFormatError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)


class FileFormat(str, Enum):
    """Closed set of upload formats."""

    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"
    DOCX = "docx"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"

    @property
    def is_tabular(self) -> bool:
        return self in (FileFormat.CSV, FileFormat.EXCEL)


_EXTENSION_REGISTRY: dict[str, FileFormat] = {
    "csv": FileFormat.CSV,
    "xlsx": FileFormat.EXCEL,
    "xls": FileFormat.EXCEL,
    "pdf": FileFormat.PDF,
    "docx": FileFormat.DOCX,
    "jpg": FileFormat.IMAGE,
    "jpeg": FileFormat.IMAGE,
    "png": FileFormat.IMAGE,
}


def _format_from_mime(mime_type: str) -> FileFormat:
    mime = mime_type.strip().lower()
    if not mime:
        return FileFormat.UNSUPPORTED
    if mime in ("text/csv", "application/csv"):
        return FileFormat.CSV
    if "spreadsheet" in mime or "ms-excel" in mime:
        return FileFormat.EXCEL
    if mime == "application/pdf":
        return FileFormat.PDF
    if "word" in mime:
        return FileFormat.DOCX
    if mime.startswith("image/"):
        return FileFormat.IMAGE
    return FileFormat.UNSUPPORTED


def _format_from_extension(file_name: str) -> FileFormat:
    extension = PurePath(file_name.strip()).suffix.lower().lstrip(".")
    return _EXTENSION_REGISTRY.get(extension, FileFormat.UNSUPPORTED)


def resolve_format(file_name: str, mime_type: str | None) -> FileFormat:
    """
    Resolve the upload format.

    Args:
        file_name: Original file name (extension used as fallback)
        mime_type: Declared MIME type, may be empty

    Returns:
        FileFormat member, ``UNSUPPORTED`` when nothing matches

    Example:
        >>> resolve_format("staff.bin", "text/csv")
        <FileFormat.CSV: 'csv'>
        >>> resolve_format("staff.XLSX", "application/octet-stream")
        <FileFormat.EXCEL: 'excel'>
    """
    file_format = _format_from_mime(mime_type or "")
    if file_format is FileFormat.UNSUPPORTED:
        file_format = _format_from_extension(file_name)

    logger.debug(
        "Upload format resolved",
        file_name=file_name,
        mime_type=mime_type,
        file_format=file_format.value,
    )
    return file_format


def require_supported(file_name: str, mime_type: str | None) -> FileFormat:
    """
    Resolve the format, raising for ``UNSUPPORTED``.

    Raises:
        UnsupportedFormatError: If neither MIME type nor extension matches
    """
    file_format = resolve_format(file_name, mime_type)
    if file_format is FileFormat.UNSUPPORTED:
        raise UnsupportedFormatError(
            message=f"Unsupported file type: {mime_type or file_name}",
            details={
                "file_name": file_name,
                "mime_type": mime_type,
                "supported_extensions": sorted(_EXTENSION_REGISTRY),
            },
        )
    return file_format
