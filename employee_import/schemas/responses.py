"""
Pydantic Response Models
========================

API response schemas for the employee import endpoints.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from employee_import.schemas.domain import EmployeeRecordDraft


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ImportUploadResponse(_CamelModel):
    """
    Response for POST /imports/process.

    Attributes:
        success: Always true; failures are reported as errors
        employees: Validated drafts awaiting review
        import_id: Ledger job id
        upload_status: success, failed or skipped (object store not configured)
    """

    success: bool = True
    employees: list[EmployeeRecordDraft] = Field(default_factory=list)
    import_id: Annotated[UUID, Field(alias="importId")]
    upload_status: Annotated[
        Literal["success", "failed", "skipped"],
        Field(alias="uploadStatus"),
    ]


class ImportJobResponse(_CamelModel):
    """Response for GET /imports/{import_id}."""

    id: UUID
    file_name: Annotated[str, Field(alias="fileName")]
    file_key: Annotated[str | None, Field(alias="fileKey")] = None
    mime_type: Annotated[str, Field(alias="mimeType")]
    file_size_bytes: Annotated[int, Field(alias="fileSizeBytes")]
    uploaded_by: Annotated[str | None, Field(alias="uploadedBy")] = None
    status: Literal["uploaded", "processing", "parsed", "failed"]
    result_payload: Annotated[dict[str, Any] | None, Field(alias="resultPayload")] = None
    created_at: Annotated[datetime, Field(alias="createdAt")]
    processed_at: Annotated[datetime | None, Field(alias="processedAt")] = None


class StaleRecoveryResponse(_CamelModel):
    """Response for POST /imports/recover-stale."""

    recovered: int
    job_ids: Annotated[list[UUID], Field(alias="jobIds")]


class SaveDraftsResponse(_CamelModel):
    """Response for POST /imports/save."""

    success: bool = True
    created: int
    updated: int
    skipped: int
    total: int


class RowError(_CamelModel):
    """A validation problem on one bulk CSV row (1-based, header excluded)."""

    row_index: Annotated[int, Field(alias="rowIndex")]
    field: str
    message: str


class PreviewCounts(BaseModel):
    total: int
    create: int
    update: int
    invalid: int


class PreviewRow(_CamelModel):
    """Sample row shown before committing."""

    row_index: Annotated[int, Field(alias="rowIndex")]
    intent: Literal["create", "update"]
    emp_code_auto: Annotated[bool, Field(alias="empCodeAuto")] = False
    record: EmployeeRecordDraft


class BulkPreviewResponse(_CamelModel):
    """Response for POST /imports/bulk/preview."""

    ok: bool = True
    columns: list[str]
    sample: list[PreviewRow]
    counts: PreviewCounts
    errors: list[RowError]


class GeneratedCode(_CamelModel):
    email: str | None = None
    emp_code: Annotated[str, Field(alias="empCode")]


class BulkCommitResponse(_CamelModel):
    """Response for POST /imports/bulk/commit."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    generated_codes: Annotated[list[GeneratedCode], Field(alias="generatedCodes")] = []
    warnings: list[str] = Field(default_factory=list)
    dry_run: Annotated[bool, Field(alias="dryRun")] = False
