"""
Object Store Uploader
=====================

Uploads raw import files to S3 with a hand-signed PUT (see ``sigv4``).

Object keys: ``imports/employees/{YYYY}/{MM}/{uuid}_{sanitized name}``.

Any transport error or non-2xx response raises ``UploadError`` carrying the
HTTP status and reason. There are no retries.
"""

import re
from datetime import datetime, timezone
from uuid import UUID, uuid4

import httpx

from employee_import.config.settings import Settings, get_settings
from employee_import.services.sigv4 import RequestSigner
from employee_import.utils.errors import ConfigurationError, UploadError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "imports/employees"
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", file_name)


def build_object_key(
    file_name: str,
    now: datetime | None = None,
    file_id: UUID | None = None,
) -> str:
    """Build the storage key for an uploaded file."""
    now = now or datetime.now(timezone.utc)
    file_id = file_id or uuid4()
    return f"{KEY_PREFIX}/{now:%Y}/{now:%m}/{file_id}_{sanitize_file_name(file_name)}"


class ObjectStoreUploader:
    """
    Signed PUT uploader.

    Usage:
        uploader = ObjectStoreUploader.from_settings(settings)
        await uploader.put_object(key, data, "text/csv")
    """

    def __init__(
        self,
        signer: RequestSigner,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._signer = signer
        self._timeout = timeout
        self._client = http_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "ObjectStoreUploader":
        """
        Build an uploader from AWS settings.

        Raises:
            ConfigurationError: If any AWS setting is missing
        """
        settings = settings or get_settings()
        if not settings.object_store_enabled:
            raise ConfigurationError(
                message="Object storage is not configured",
                details={
                    "hint": "Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, "
                    "AWS_S3_BUCKET and AWS_REGION"
                },
            )
        signer = RequestSigner(
            access_key=settings.aws_access_key_id,
            secret_key=settings.aws_secret_access_key,
            region=settings.aws_region,
            bucket=settings.aws_s3_bucket,
        )
        return cls(signer, timeout=settings.upload_timeout, http_client=http_client)

    async def _send(self, url: str, headers: dict[str, str], data: bytes) -> httpx.Response:
        if self._client is not None:
            return await self._client.put(url, content=data, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.put(url, content=data, headers=headers)

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes under ``key``.

        Returns:
            The object key

        Raises:
            UploadError: On network failure or non-2xx status
        """
        url, headers = self._signer.sign_put(key, content_type)

        try:
            response = await self._send(url, headers, data)
        except httpx.HTTPError as e:
            logger.error("Object upload failed", key=key, error=str(e))
            raise UploadError(
                message=f"S3 upload failed: {e}",
                details={"key": key, "error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            logger.error(
                "Object upload rejected",
                key=key,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
            raise UploadError(
                message=f"S3 upload failed: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
                status_text=response.reason_phrase,
                details={"key": key, "body": response.text[:500]},
            )

        logger.info("Object uploaded", key=key, size_bytes=len(data))
        return key
