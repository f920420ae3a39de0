"""
Bulk CSV Routes
===============

Two-phase import of pasted CSV text.

Endpoints:
- POST /imports/bulk/preview - Validate and report counts, errors and a sample
- POST /imports/bulk/commit - Re-validate and write (or plan, with dryRun)
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from employee_import.api.dependencies import get_bulk_import_service, require_importer
from employee_import.schemas.requests import BulkCommitRequest, BulkPreviewRequest
from employee_import.schemas.responses import BulkCommitResponse, BulkPreviewResponse
from employee_import.services.auth import CurrentUser
from employee_import.services.bulk_import import BulkImportService

router = APIRouter()


@router.post(
    "/preview",
    response_model=BulkPreviewResponse,
    summary="Preview a bulk CSV import",
)
async def preview_bulk_import(
    request: BulkPreviewRequest,
    user: Annotated[CurrentUser, Depends(require_importer)],
    service: Annotated[BulkImportService, Depends(get_bulk_import_service)],
) -> BulkPreviewResponse:
    return await service.preview(request.csv_text, request.delimiter)


@router.post(
    "/commit",
    response_model=BulkCommitResponse,
    summary="Commit a bulk CSV import",
    responses={422: {"description": "Some rows are invalid; nothing was written"}},
)
async def commit_bulk_import(
    request: BulkCommitRequest,
    user: Annotated[CurrentUser, Depends(require_importer)],
    service: Annotated[BulkImportService, Depends(get_bulk_import_service)],
) -> BulkCommitResponse:
    """
    Write the CSV rows.

    The CSV is parsed and validated again here; nothing from the preview is
    reused. With ``dryRun`` the response shows what would happen.
    """
    return await service.commit(
        csv_text=request.csv_text,
        delimiter=request.delimiter,
        auto_prefix=request.auto_prefix,
        start_number=request.start_number,
        dry_run=request.dry_run,
    )
