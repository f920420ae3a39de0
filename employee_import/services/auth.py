"""
Caller Authentication and Import Authorization
==============================================

Resolves a bearer token to a user through the identity service, then checks
the caller's roles in the record store.

    missing / rejected token       -> AuthError (401)
    no role in allowed_roles       -> ForbiddenError (403)
"""

from dataclasses import dataclass

import httpx

from employee_import.config.settings import Settings, get_settings
from employee_import.db.repositories.roles_repo import RolesRepository
from employee_import.utils.errors import AuthError, EmployeeImportError, ForbiddenError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""

    id: str
    email: str | None = None


def extract_bearer_token(authorization: str | None) -> str:
    """
    Raises:
        AuthError: If the header is missing or not a bearer token
    """
    if not authorization:
        raise AuthError(message="Unauthorized", details={"reason": "missing_authorization"})
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError(message="Unauthorized", details={"reason": "invalid_scheme"})
    return token.strip()


class IdentityClient:
    """
    Client for the identity service ``/user`` endpoint.

    Usage:
        user = await IdentityClient().get_user(token)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = http_client

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=headers)
        async with httpx.AsyncClient(timeout=self._settings.auth_timeout) as client:
            return await client.get(url, headers=headers)

    async def get_user(self, token: str) -> CurrentUser:
        """
        Resolve a token to its user.

        Raises:
            AuthError: If the identity service rejects the token
            EmployeeImportError: If the identity service is unreachable
        """
        url = f"{self._settings.auth_url.rstrip('/')}/user"
        headers = {"Authorization": f"Bearer {token}"}
        if self._settings.auth_api_key:
            headers["apikey"] = self._settings.auth_api_key

        try:
            response = await self._get(url, headers)
        except httpx.HTTPError as e:
            logger.error("Identity service unreachable", error=str(e))
            raise EmployeeImportError(
                message="Identity service unavailable",
                details={"error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            logger.info("Token rejected", status_code=response.status_code)
            raise AuthError(message="Unauthorized", details={"status_code": response.status_code})

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError(message="Unauthorized", details={"reason": "bad_identity_response"}) from e

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise AuthError(message="Unauthorized", details={"reason": "no_user"})

        return CurrentUser(id=str(user_id), email=data.get("email"))


async def ensure_import_role(
    user: CurrentUser,
    roles_repo: RolesRepository,
    allowed_roles: list[str] | None = None,
) -> None:
    """
    Raises:
        ForbiddenError: If the user holds none of the allowed roles
    """
    allowed = allowed_roles or get_settings().allowed_roles
    if not await roles_repo.has_any_role(user.id, allowed):
        logger.warning("Import access denied", user_id=user.id, allowed_roles=allowed)
        raise ForbiddenError(
            message="Access denied. HR role required.",
            details={"allowed_roles": allowed},
        )
