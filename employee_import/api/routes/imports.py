"""
Import Routes
=============

API endpoints for file imports and the import job ledger.

Endpoints:
- POST /imports/process - Upload a file and get reviewable employee drafts
- POST /imports/save - Persist reviewed drafts
- POST /imports/recover-stale - Fail jobs stuck in processing
- GET /imports/{import_id} - Inspect one import job

All endpoints require an HR or super_admin caller.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from employee_import.api.dependencies import (
    get_bulk_import_service,
    get_import_service,
    require_importer,
)
from employee_import.config.settings import Settings, get_settings
from employee_import.schemas.requests import ImportUploadRequest, SaveDraftsRequest
from employee_import.schemas.responses import (
    ImportJobResponse,
    ImportUploadResponse,
    SaveDraftsResponse,
    StaleRecoveryResponse,
)
from employee_import.services.auth import CurrentUser
from employee_import.services.bulk_import import BulkImportService
from employee_import.services.import_ledger import ImportLedger, get_import_ledger
from employee_import.services.import_service import ImportService, decode_upload
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/process",
    response_model=ImportUploadResponse,
    summary="Import an employee file",
    description=(
        "Accepts a base64-encoded CSV, Excel, PDF, DOCX or image file, stores the "
        "original in object storage and returns validated employee drafts for review."
    ),
    responses={
        401: {"description": "Missing or invalid token"},
        403: {"description": "Caller lacks an import role"},
        422: {"description": "Invalid or oversized payload"},
        500: {"description": "Import failed; the job is recorded as failed"},
    },
)
async def process_import(
    request: ImportUploadRequest,
    user: Annotated[CurrentUser, Depends(require_importer)],
    service: Annotated[ImportService, Depends(get_import_service)],
    settings: Settings = Depends(get_settings),
) -> ImportUploadResponse:
    data = decode_upload(request.file_data, settings.max_file_size_bytes)

    logger.info(
        "Processing import",
        file_name=request.file_name,
        file_type=request.file_type,
        size_bytes=len(data),
        reported_size=request.file_size,
        user_id=user.id,
    )

    result = await service.process_upload(
        file_name=request.file_name,
        mime_type=request.file_type,
        data=data,
        uploaded_by=user.id,
    )
    return ImportUploadResponse(
        employees=result.employees,
        import_id=result.job.id,
        upload_status=result.upload_status,
    )


@router.post(
    "/save",
    response_model=SaveDraftsResponse,
    summary="Save reviewed employee drafts",
)
async def save_drafts(
    request: SaveDraftsRequest,
    user: Annotated[CurrentUser, Depends(require_importer)],
    service: Annotated[BulkImportService, Depends(get_bulk_import_service)],
) -> SaveDraftsResponse:
    """Create or update employees from reviewed drafts."""
    logger.info("Saving drafts", count=len(request.employees), user_id=user.id)
    return await service.save_drafts(request.employees)


@router.post(
    "/recover-stale",
    response_model=StaleRecoveryResponse,
    summary="Fail import jobs stuck in processing",
)
async def recover_stale_jobs(
    user: Annotated[CurrentUser, Depends(require_importer)],
    ledger: Annotated[ImportLedger, Depends(get_import_ledger)],
) -> StaleRecoveryResponse:
    job_ids = await ledger.fail_stale_jobs()
    logger.info("Stale job recovery run", recovered=len(job_ids), user_id=user.id)
    return StaleRecoveryResponse(recovered=len(job_ids), job_ids=job_ids)


@router.get(
    "/{import_id}",
    response_model=ImportJobResponse,
    summary="Get import job",
    responses={404: {"description": "Import job not found"}},
)
async def get_import_job(
    import_id: UUID,
    user: Annotated[CurrentUser, Depends(require_importer)],
    ledger: Annotated[ImportLedger, Depends(get_import_ledger)],
) -> ImportJobResponse:
    """Return the ledger record for one import."""
    job = await ledger.require_job(import_id)
    return ImportJobResponse.model_validate(job.model_dump(mode="json"))
