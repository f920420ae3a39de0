"""
User Roles Repository
=====================

Read-only access to role grants for the import permission check.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from employee_import.db.models import UserRole


class RolesRepository:
    """Repository for user_roles table lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def has_any_role(self, user_id: str, roles: list[str]) -> bool:
        """Return True if the user holds at least one of ``roles``."""
        result = await self._session.execute(
            select(UserRole.id)
            .where(UserRole.user_id == user_id, UserRole.role.in_(roles))
            .limit(1)
        )
        return result.first() is not None
