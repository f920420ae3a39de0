"""
Import Service
==============

Orchestrates one file import from received bytes to reviewable drafts.

Pipeline:
    1. Create the ledger job (uploaded) and start it (processing)
    2. Upload the raw bytes with a signed PUT (skipped when S3 is not configured)
    3. Route by MIME type / extension
    4. Parse tabular formats, or extract text and run AI extraction
    5. Normalize and persist {employees, total} (parsed)

Any stage error marks the job failed with {error} and is re-raised, so the
HTTP response and the ledger always agree.
"""

import asyncio
import base64
import binascii
import time
from dataclasses import dataclass, field
from typing import Literal

from employee_import.api.metrics import (
    IMPORT_JOBS_IN_PROGRESS,
    UPLOADS_TOTAL,
    record_job_result,
    record_phase_duration,
)
from employee_import.config.settings import Settings, get_settings
from employee_import.ingest.csv_parser import CsvParser
from employee_import.ingest.excel_strategy import ExcelStrategy
from employee_import.ingest.format_router import FileFormat, require_supported, resolve_format
from employee_import.ingest.text_extractors import extract_text
from employee_import.schemas.domain import EmployeeRecordDraft
from employee_import.services.ai_extractor import AIExtractionClient
from employee_import.services.import_ledger import ImportJob, ImportLedger
from employee_import.services.normalizer import normalize_record
from employee_import.services.object_store import ObjectStoreUploader, build_object_key
from employee_import.utils.errors import EmployeeImportError, ValidationError
from employee_import.utils.logger import get_logger, job_context

logger = get_logger(__name__)

UploadStatus = Literal["success", "failed", "skipped"]


def decode_upload(file_data: str, max_bytes: int) -> bytes:
    """
    Decode a base64 payload and enforce the size limit.

    Raises:
        ValidationError: If the payload is not valid base64, empty, or too large
    """
    # Accept data URLs ("data:text/csv;base64,....")
    if file_data.startswith("data:") and "," in file_data:
        file_data = file_data.split(",", 1)[1]

    try:
        data = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(
            message="File data is not valid base64",
            details={"error": str(e)},
        ) from e

    if not data:
        raise ValidationError(message="File is empty")

    if len(data) > max_bytes:
        raise ValidationError(
            message=f"File exceeds maximum size of {max_bytes // (1024 * 1024)} MB",
            details={"size_bytes": len(data), "max_bytes": max_bytes},
        )
    return data


@dataclass
class ImportResult:
    """Outcome of a successful import."""

    job: ImportJob
    employees: list[EmployeeRecordDraft] = field(default_factory=list)
    upload_status: UploadStatus = "skipped"

    @property
    def total(self) -> int:
        return len(self.employees)


class ImportService:
    """
    Runs the import pipeline for one uploaded file.

    Usage:
        service = ImportService(ledger, ai_client, uploader)
        result = await service.process_upload("staff.csv", "text/csv", data, user_id)
    """

    def __init__(
        self,
        ledger: ImportLedger,
        ai_client: AIExtractionClient,
        uploader: ObjectStoreUploader | None = None,
        settings: Settings | None = None,
        csv_parser: CsvParser | None = None,
        excel_strategy: ExcelStrategy | None = None,
    ) -> None:
        self._ledger = ledger
        self._ai_client = ai_client
        self._uploader = uploader
        self._settings = settings or get_settings()
        self._csv_parser = csv_parser or CsvParser()
        self._excel_strategy = excel_strategy or ExcelStrategy()

    async def process_upload(
        self,
        file_name: str,
        mime_type: str,
        data: bytes,
        uploaded_by: str | None = None,
    ) -> ImportResult:
        """
        Import one file.

        Raises:
            EmployeeImportError: Any stage failure, after the job is marked failed
        """
        job = await self._ledger.create_job(
            file_name=file_name,
            mime_type=mime_type,
            file_size_bytes=len(data),
            uploaded_by=uploaded_by,
        )
        with job_context(str(job.id)):
            await self._ledger.start(job.id)
            return await self._run(job, data)

    async def _run(self, job: ImportJob, data: bytes) -> ImportResult:
        file_name, mime_type = job.file_name, job.mime_type
        file_format = resolve_format(file_name, mime_type)
        log = logger.bind(file_format=file_format.value)
        start = time.perf_counter()
        IMPORT_JOBS_IN_PROGRESS.inc()

        try:
            upload_status = await self._upload(job, data, mime_type)
            require_supported(file_name, mime_type)

            parse_start = time.perf_counter()
            employees = await self._parse(file_format, data)
            record_phase_duration("parsing", time.perf_counter() - parse_start)

            job = await self._ledger.mark_parsed(
                job.id, [draft.model_dump(mode="json") for draft in employees]
            )
        except Exception as e:
            message = e.message if isinstance(e, EmployeeImportError) else str(e)
            log.error("Import failed", error=message, error_type=type(e).__name__)
            try:
                await self._ledger.mark_failed(job.id, message or type(e).__name__)
            except Exception as ledger_error:
                log.error(
                    "Failed to mark import job failed",
                    error=str(ledger_error),
                    error_type=type(ledger_error).__name__,
                )
            record_job_result(file_format.value, "failed")
            raise
        finally:
            IMPORT_JOBS_IN_PROGRESS.dec()
            record_phase_duration("total", time.perf_counter() - start)

        invalid = sum(1 for draft in employees if not draft.is_valid)
        record_job_result(
            file_format.value, "parsed", valid=len(employees) - invalid, invalid=invalid
        )
        log.info(
            "Import parsed",
            employees=len(employees),
            invalid=invalid,
            upload_status=upload_status,
        )
        return ImportResult(job=job, employees=employees, upload_status=upload_status)

    async def _upload(self, job: ImportJob, data: bytes, mime_type: str) -> UploadStatus:
        if self._uploader is None:
            logger.warning("Object storage not configured, skipping upload")
            UPLOADS_TOTAL.labels(outcome="skipped").inc()
            return "skipped"

        key = build_object_key(job.file_name)
        upload_start = time.perf_counter()
        try:
            await self._uploader.put_object(key, data, mime_type or "application/octet-stream")
        except EmployeeImportError:
            UPLOADS_TOTAL.labels(outcome="failed").inc()
            raise
        finally:
            record_phase_duration("upload", time.perf_counter() - upload_start)

        UPLOADS_TOTAL.labels(outcome="success").inc()
        await self._ledger.set_file_key(job.id, key)
        return "success"

    async def _parse(self, file_format: FileFormat, data: bytes) -> list[EmployeeRecordDraft]:
        if file_format == FileFormat.CSV:
            rows = await asyncio.to_thread(self._csv_parser.parse, data)
            return [normalize_record(row.to_candidate(), strict=False) for row in rows]

        if file_format == FileFormat.EXCEL:
            sheet = await asyncio.to_thread(self._excel_strategy.parse, data)
            if sheet.has_mapped_columns:
                return [normalize_record(row.to_candidate(), strict=False) for row in sheet.rows]
            logger.info("No spreadsheet header recognised, using AI extraction")
            return await self._extract_with_ai(sheet.text)

        text = await asyncio.to_thread(extract_text, file_format, data)
        return await self._extract_with_ai(text)

    async def _extract_with_ai(self, text: str) -> list[EmployeeRecordDraft]:
        extraction_start = time.perf_counter()
        try:
            return await self._ai_client.extract_employees(text)
        finally:
            record_phase_duration("extraction", time.perf_counter() - extraction_start)
