"""
AWS Signature Version 4 Signer
==============================

Builds the ``Authorization`` header for a single-shot S3 PUT with an unsigned
payload, using only ``hmac`` and ``hashlib``.

Steps:
    1. Canonical request (method, path, signed headers, payload placeholder)
    2. String to sign (algorithm, timestamp, credential scope, request hash)
    3. Signing key from the HMAC-SHA256 ladder date -> region -> service
    4. Hex signature of the string to sign

The derived signing key is never stored or logged.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def amz_dates(now: datetime) -> tuple[str, str]:
    """
    Format a timestamp for signing.

    Returns:
        (dateString ``YYYYMMDDTHHMMSSZ``, dateStamp ``YYYYMMDD``)
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    date_string = now.strftime("%Y%m%dT%H%M%SZ")
    return date_string, date_string[:8]


def credential_scope(date_stamp: str, region: str, service: str = SERVICE) -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def build_canonical_request(host: str, object_key: str, date_string: str) -> str:
    canonical_headers = (
        f"host:{host}\n"
        f"x-amz-content-sha256:{UNSIGNED_PAYLOAD}\n"
        f"x-amz-date:{date_string}\n"
    )
    return f"PUT\n/{object_key}\n\n{canonical_headers}\n{SIGNED_HEADERS}\n{UNSIGNED_PAYLOAD}"


def build_string_to_sign(date_string: str, scope: str, canonical_request: str) -> str:
    request_hash = hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()
    return f"{ALGORITHM}\n{date_string}\n{scope}\n{request_hash}"


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    """Run the four-step HMAC key ladder."""
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def compute_signature(
    secret_key: str,
    date_stamp: str,
    region: str,
    service: str,
    string_to_sign: str,
) -> str:
    """
    Pure signature function.

    Same inputs always produce the same lowercase hex signature, which makes
    it checkable against published or precomputed vectors.
    """
    signing_key = derive_signing_key(secret_key, date_stamp, region, service)
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class SigningContext:
    """
    Everything needed to sign one PUT.

    Attributes:
        access_key: Access key id (appears in the header)
        secret_key: Secret access key (only feeds the key ladder)
        region: Bucket region
        bucket: Bucket name
        object_key: Object key without a leading slash
        date_string: ``YYYYMMDDTHHMMSSZ``
        date_stamp: ``YYYYMMDD``
        service: Signing service name
    """

    access_key: str
    secret_key: str
    region: str
    bucket: str
    object_key: str
    date_string: str
    date_stamp: str
    service: str = SERVICE

    def __repr__(self) -> str:
        return (
            f"SigningContext(access_key={self.access_key!r}, region={self.region!r}, "
            f"bucket={self.bucket!r}, object_key={self.object_key!r}, "
            f"date_string={self.date_string!r})"
        )

    @property
    def host(self) -> str:
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.object_key}"

    @property
    def scope(self) -> str:
        return credential_scope(self.date_stamp, self.region, self.service)

    @classmethod
    def create(
        cls,
        access_key: str,
        secret_key: str,
        region: str,
        bucket: str,
        object_key: str,
        now: datetime,
    ) -> "SigningContext":
        date_string, date_stamp = amz_dates(now)
        return cls(
            access_key=access_key,
            secret_key=secret_key,
            region=region,
            bucket=bucket,
            object_key=object_key.lstrip("/"),
            date_string=date_string,
            date_stamp=date_stamp,
        )


def authorization_header(ctx: SigningContext) -> str:
    """Compute the full ``Authorization`` header value."""
    canonical_request = build_canonical_request(ctx.host, ctx.object_key, ctx.date_string)
    string_to_sign = build_string_to_sign(ctx.date_string, ctx.scope, canonical_request)
    signature = compute_signature(
        ctx.secret_key, ctx.date_stamp, ctx.region, ctx.service, string_to_sign
    )
    return (
        f"{ALGORITHM} Credential={ctx.access_key}/{ctx.scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestSigner:
    """
    Signs S3 PUT requests for one set of credentials.

    Usage:
        signer = RequestSigner(access_key, secret_key, region, bucket)
        url, headers = signer.sign_put("imports/employees/...", "text/csv")

    ``clock`` is injectable so tests can freeze the timestamp.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: str,
        bucket: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._region = region
        self._bucket = bucket
        self._clock = clock

    def context_for(self, object_key: str) -> SigningContext:
        return SigningContext.create(
            access_key=self._access_key,
            secret_key=self._secret_key,
            region=self._region,
            bucket=self._bucket,
            object_key=object_key,
            now=self._clock(),
        )

    def sign_put(self, object_key: str, content_type: str) -> tuple[str, dict[str, str]]:
        """
        Sign a PUT for ``object_key``.

        Returns:
            (request URL, request headers)
        """
        ctx = self.context_for(object_key)
        headers = {
            "Authorization": authorization_header(ctx),
            "X-Amz-Date": ctx.date_string,
            "X-Amz-Content-Sha256": UNSIGNED_PAYLOAD,
            "Content-Type": content_type,
        }
        return ctx.url, headers
