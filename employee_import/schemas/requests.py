"""
Pydantic Request Models
=======================

API request schemas for the employee import endpoints.
Wire names are camelCase; Python attributes are snake_case.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from employee_import.schemas.domain import EmployeeRecordDraft


class ImportUploadRequest(BaseModel):
    """
    Request body for POST /imports/process.

    Attributes:
        file_name: Original file name (extension is the routing fallback)
        file_type: MIME type reported by the browser
        file_size: Size reported by the client (informational)
        file_data: Base64-encoded file contents
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "fileName": "staff.csv",
                "fileType": "text/csv",
                "fileSize": 41,
                "fileData": "Zmlyc3RfbmFtZSxlbWFpbApKYW5lLGphbmVAZXhhbXBsZS5jb20K",
            }
        },
    )

    file_name: Annotated[
        str,
        Field(alias="fileName", min_length=1, max_length=255, description="Original file name"),
    ]
    file_type: Annotated[
        str,
        Field(alias="fileType", description="MIME type of the upload"),
    ] = ""
    file_size: Annotated[
        int | None,
        Field(alias="fileSize", ge=0, description="Client-reported size in bytes"),
    ] = None
    file_data: Annotated[
        str,
        Field(alias="fileData", min_length=1, description="Base64-encoded file contents"),
    ]


class SaveDraftsRequest(BaseModel):
    """Request body for POST /imports/save."""

    model_config = ConfigDict(populate_by_name=True)

    employees: Annotated[
        list[EmployeeRecordDraft],
        Field(description="Reviewed drafts; only should_save and valid ones are written"),
    ]


class BulkPreviewRequest(BaseModel):
    """Request body for POST /imports/bulk/preview."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "csvText": "first_name,email,department\nJane,jane@example.com,Finance",
                "delimiter": ",",
            }
        },
    )

    csv_text: Annotated[str, Field(alias="csvText", description="Raw CSV text")]
    delimiter: Annotated[str, Field(min_length=1, max_length=1)] = ","


class BulkCommitRequest(BulkPreviewRequest):
    """Request body for POST /imports/bulk/commit."""

    auto_prefix: Annotated[
        str,
        Field(alias="autoPrefix", min_length=1, max_length=10),
    ] = "SM"
    start_number: Annotated[
        int | None,
        Field(alias="startNumber", ge=1, description="First generated code number"),
    ] = None
    dry_run: Annotated[
        bool,
        Field(alias="dryRun", description="Validate and plan without writing"),
    ] = False

    @field_validator("auto_prefix")
    @classmethod
    def strip_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("autoPrefix must not be blank")
        return v
