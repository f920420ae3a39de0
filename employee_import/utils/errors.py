"""
Custom Exception Classes
========================

Application-specific exceptions for the import pipeline.

Stage-level errors (format, parse, AI extraction, upload) abort a job and
are re-raised to the HTTP layer. Per-field validation problems are not
exceptions: they are collected as ``FieldError`` values on each draft.
"""

from typing import Any


class EmployeeImportError(Exception):
    """Base exception for the employee import service."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(EmployeeImportError):
    """Raised when the bearer token is missing or rejected."""

    status_code = 401


class ForbiddenError(EmployeeImportError):
    """Raised when the caller lacks an import-capable role."""

    status_code = 403


class JobNotFoundError(EmployeeImportError):
    """Raised when an import job is not found."""

    status_code = 404


class ValidationError(EmployeeImportError):
    """
    Raised when a request is rejected as a whole.

    Examples: undecodable upload payload, oversized file, or a commit
    attempted while some rows are still invalid.
    """

    status_code = 422


class UnsupportedFormatError(EmployeeImportError):
    """Raised when neither MIME type nor extension selects a parser."""

    pass


class ParseError(EmployeeImportError):
    """Raised when a file cannot be parsed."""

    pass


class AIExtractionError(EmployeeImportError):
    """Raised when the completion API fails or returns no usable JSON array."""

    pass


class UploadError(EmployeeImportError):
    """Raised when the signed PUT to object storage fails."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        status_text: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status = status
        self.status_text = status_text


class IllegalTransitionError(EmployeeImportError):
    """Raised when an import job event is not allowed from its current status."""

    pass


class DatabaseError(EmployeeImportError):
    """Raised when record store operations fail."""

    pass


class ConfigurationError(EmployeeImportError):
    """Raised when configuration is invalid or incomplete."""

    pass
