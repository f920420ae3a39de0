"""
Import Job Ledger
=================

Redis-backed record of every file import and its lifecycle.

State machine:
    uploaded --start--> processing --succeed--> parsed
                                   --fail-----> failed

``result_payload`` is written only on a terminal state:
    parsed  -> {"employees": [...], "total": n}
    failed  -> {"error": "..."}

Storage:
    employee-import:job:{id}      JSON document with a TTL
    employee-import:processing    set of job ids currently processing
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import redis.asyncio as aioredis
from pydantic import BaseModel, Field

from employee_import.config.settings import Settings, get_settings
from employee_import.utils.errors import IllegalTransitionError, JobNotFoundError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

# Redis key patterns
JOB_PREFIX = "employee-import:job:"
PROCESSING_SET_KEY = "employee-import:processing"

STALE_JOB_ERROR = "Processing timed out"


class ImportJobStatus(str, Enum):
    """Import job states."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PARSED = "parsed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportJobStatus.PARSED, ImportJobStatus.FAILED)


class JobEvent(str, Enum):
    """Events that drive the job state machine."""

    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"


_TRANSITIONS: dict[tuple[ImportJobStatus, JobEvent], ImportJobStatus] = {
    (ImportJobStatus.UPLOADED, JobEvent.START): ImportJobStatus.PROCESSING,
    (ImportJobStatus.PROCESSING, JobEvent.SUCCEED): ImportJobStatus.PARSED,
    (ImportJobStatus.PROCESSING, JobEvent.FAIL): ImportJobStatus.FAILED,
}


def transition(current: ImportJobStatus, event: JobEvent) -> ImportJobStatus:
    """
    Return the next status for ``event``.

    Raises:
        IllegalTransitionError: If the event is not allowed from ``current``
    """
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise IllegalTransitionError(
            message=f"Cannot {event.value} a job in status {current.value}",
            details={"status": current.value, "event": event.value},
        ) from None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ImportJob(BaseModel):
    """
    Import job document stored in Redis.

    Attributes:
        id: Job identifier (returned to callers as ``importId``)
        file_name: Original file name
        file_key: Object store key; None until the upload succeeds
        mime_type: MIME type reported by the client
        file_size_bytes: Size of the decoded upload
        uploaded_by: Identity of the caller
        status: Current lifecycle state
        result_payload: Terminal payload, see module docstring
        created_at: When the bytes were received
        started_at: When processing began
        processed_at: When a terminal state was reached
    """

    id: UUID = Field(default_factory=uuid4)
    file_name: str
    file_key: str | None = None
    mime_type: str = ""
    file_size_bytes: int = Field(default=0, ge=0)
    uploaded_by: str | None = None
    status: ImportJobStatus = ImportJobStatus.UPLOADED
    result_payload: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_now)
    started_at: datetime | None = None
    processed_at: datetime | None = None

    def to_json(self) -> str:
        """Serialize to JSON string for Redis storage."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "ImportJob":
        """Deserialize from JSON string."""
        return cls.model_validate_json(data)


class ImportLedger:
    """
    Persists import jobs and enforces their state machine.

    Usage:
        ledger = await get_import_ledger()
        job = await ledger.create_job(file_name="staff.csv", mime_type="text/csv", ...)
        await ledger.start(job.id)
        await ledger.mark_parsed(job.id, employees=[...])
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        settings: Settings | None = None,
    ) -> None:
        self._redis = redis_client
        self._settings = settings or get_settings()
        self._ttl_seconds = self._settings.import_job_ttl_days * 86400

    @staticmethod
    def _job_key(job_id: UUID) -> str:
        """Generate Redis key for a job."""
        return f"{JOB_PREFIX}{job_id}"

    async def _save(self, job: ImportJob) -> None:
        await self._redis.setex(self._job_key(job.id), self._ttl_seconds, job.to_json())

    async def create_job(
        self,
        file_name: str,
        mime_type: str,
        file_size_bytes: int,
        uploaded_by: str | None = None,
    ) -> ImportJob:
        """Record received bytes as a new job in ``uploaded``."""
        job = ImportJob(
            file_name=file_name,
            mime_type=mime_type,
            file_size_bytes=file_size_bytes,
            uploaded_by=uploaded_by,
        )
        await self._save(job)

        logger.info(
            "Import job created",
            job_id=str(job.id),
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=file_size_bytes,
        )
        return job

    async def get_job(self, job_id: UUID) -> ImportJob | None:
        """
        Retrieve a job.

        Returns:
            ImportJob if found, None otherwise
        """
        data = await self._redis.get(self._job_key(job_id))
        if not data:
            logger.debug("Import job not found", job_id=str(job_id))
            return None
        return ImportJob.from_json(data)

    async def require_job(self, job_id: UUID) -> ImportJob:
        """
        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = await self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(
                message=f"Import job not found: {job_id}",
                details={"job_id": str(job_id)},
            )
        return job

    async def _apply(
        self,
        job_id: UUID,
        event: JobEvent,
        payload: dict[str, Any] | None = None,
    ) -> ImportJob:
        job = await self.require_job(job_id)
        job.status = transition(job.status, event)

        if job.status == ImportJobStatus.PROCESSING:
            job.started_at = _now()
        elif job.status.is_terminal:
            job.processed_at = _now()
            job.result_payload = payload

        await self._save(job)
        if job.status == ImportJobStatus.PROCESSING:
            await self._redis.sadd(PROCESSING_SET_KEY, str(job.id))
        else:
            await self._redis.srem(PROCESSING_SET_KEY, str(job.id))

        logger.info(
            "Import job status updated",
            job_id=str(job.id),
            job_event=event.value,
            status=job.status.value,
        )
        return job

    async def start(self, job_id: UUID) -> ImportJob:
        """Move a job to ``processing`` before any parse I/O begins."""
        return await self._apply(job_id, JobEvent.START)

    async def set_file_key(self, job_id: UUID, file_key: str) -> ImportJob:
        """Attach the object store key once the upload succeeded."""
        job = await self.require_job(job_id)
        job.file_key = file_key
        await self._save(job)
        return job

    async def mark_parsed(self, job_id: UUID, employees: list[dict[str, Any]]) -> ImportJob:
        return await self._apply(
            job_id,
            JobEvent.SUCCEED,
            {"employees": employees, "total": len(employees)},
        )

    async def mark_failed(self, job_id: UUID, error: str) -> ImportJob:
        return await self._apply(job_id, JobEvent.FAIL, {"error": error})

    async def fail_stale_jobs(self, older_than: timedelta | None = None) -> list[UUID]:
        """
        Fail jobs stuck in ``processing`` longer than ``older_than``.

        Defaults to ``stale_job_minutes``. Ids whose document has expired are
        dropped from the processing index.

        Returns:
            Ids of the jobs that were failed
        """
        older_than = older_than or timedelta(minutes=self._settings.stale_job_minutes)
        cutoff = _now() - older_than
        recovered: list[UUID] = []

        for raw_id in await self._redis.smembers(PROCESSING_SET_KEY):
            job_id = UUID(raw_id.decode() if isinstance(raw_id, bytes) else raw_id)
            job = await self.get_job(job_id)

            if job is None or job.status != ImportJobStatus.PROCESSING:
                await self._redis.srem(PROCESSING_SET_KEY, str(job_id))
                continue

            started = job.started_at or job.created_at
            if started <= cutoff:
                await self.mark_failed(job_id, STALE_JOB_ERROR)
                recovered.append(job_id)

        if recovered:
            logger.warning(
                "Failed stale import jobs",
                count=len(recovered),
                job_ids=[str(j) for j in recovered],
            )
        return recovered


# Global Redis client (initialized in lifespan)
_redis_client: aioredis.Redis | None = None


async def get_redis_client() -> aioredis.Redis:
    """
    Get or create Redis client.

    Returns:
        Async Redis client
    """
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    return _redis_client


async def get_import_ledger() -> ImportLedger:
    """
    Get ImportLedger instance.

    Factory function for dependency injection.
    """
    redis = await get_redis_client()
    return ImportLedger(redis)


async def close_redis_client() -> None:
    """Close Redis client connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
