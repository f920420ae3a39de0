"""
FastAPI Dependencies
====================

Shared request-scoped dependencies: caller identity, role check, database
session and service construction.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from employee_import.config.settings import Settings, get_settings
from employee_import.db.connection import get_session
from employee_import.db.repositories.employees_repo import EmployeesRepository
from employee_import.db.repositories.roles_repo import RolesRepository
from employee_import.services.ai_extractor import AIExtractionClient
from employee_import.services.auth import (
    CurrentUser,
    IdentityClient,
    ensure_import_role,
    extract_bearer_token,
)
from employee_import.services.bulk_import import BulkImportService
from employee_import.services.import_ledger import ImportLedger, get_import_ledger
from employee_import.services.import_service import ImportService
from employee_import.services.object_store import ObjectStoreUploader


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits on success and rolls back on error."""
    async with get_session() as session:
        yield session


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    token = extract_bearer_token(authorization)
    return await IdentityClient(settings).get_user(token)


async def require_importer(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Caller must hold one of the configured import roles."""
    await ensure_import_role(user, RolesRepository(session), settings.allowed_roles)
    return user


async def get_import_service(
    ledger: Annotated[ImportLedger, Depends(get_import_ledger)],
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[ImportService, None]:
    ai_client = AIExtractionClient(settings)
    uploader = ObjectStoreUploader.from_settings(settings) if settings.object_store_enabled else None
    try:
        yield ImportService(ledger, ai_client, uploader, settings)
    finally:
        await ai_client.close()


async def get_bulk_import_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Settings = Depends(get_settings),
) -> BulkImportService:
    return BulkImportService(EmployeesRepository(session), settings)
