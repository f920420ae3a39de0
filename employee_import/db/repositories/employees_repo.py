"""
Employees Repository
====================

Data access layer for the employees table.

Values cross this boundary in their normalized draft form (ISO date
strings, float CTC) and are converted to column types here. Every write runs
inside a SAVEPOINT so one failing row never poisons the surrounding session.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from employee_import.db.models import Employee
from employee_import.services.normalizer import parse_iso_date
from employee_import.utils.errors import DatabaseError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

# Draft fields that map one-to-one onto employee columns
WRITABLE_FIELDS: tuple[str, ...] = (
    "emp_code",
    "first_name",
    "last_name",
    "email",
    "phone",
    "department",
    "designation",
    "location",
    "doj",
    "status",
    "monthly_ctc",
)


def to_column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert normalized draft values to column types, dropping unknown keys."""
    values: dict[str, Any] = {}
    for name, value in fields.items():
        if name not in WRITABLE_FIELDS:
            continue
        if name == "doj" and isinstance(value, str):
            value = parse_iso_date(value)
        elif name == "monthly_ctc" and value is not None:
            try:
                value = Decimal(str(value))
            except InvalidOperation:
                value = None
        values[name] = value
    return values


def employee_values(employee: Employee) -> dict[str, Any]:
    """Read an employee back into normalized draft form for comparisons."""
    values: dict[str, Any] = {}
    for name in WRITABLE_FIELDS:
        value = getattr(employee, name)
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        values[name] = value
    return values


class EmployeesRepository:
    """
    Repository for employees table operations.

    Table Schema:
        id: UUID (PK)
        emp_code: str (unique)
        first_name: str
        last_name, email (unique), phone, department, designation,
        location: str | None
        doj: date | None
        status: str (default 'Active')
        monthly_ctc: Decimal | None
        created_at, updated_at: datetime
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize repository with async session.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    async def list_all(self) -> list[Employee]:
        """Load every employee for create/update intent and code allocation."""
        result = await self._session.execute(select(Employee))
        return list(result.scalars().all())

    async def find_by_code(self, emp_code: str) -> Employee | None:
        result = await self._session.execute(
            select(Employee).where(Employee.emp_code == emp_code)
        )
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Employee | None:
        """Case-insensitive email lookup."""
        result = await self._session.execute(
            select(Employee).where(func.lower(Employee.email) == email.lower())
        )
        return result.scalars().first()

    async def list_codes_with_prefix(self, prefix: str) -> list[str]:
        result = await self._session.execute(
            select(Employee.emp_code).where(Employee.emp_code.like(f"{prefix}-%"))
        )
        return list(result.scalars().all())

    async def create(self, fields: dict[str, Any]) -> Employee:
        """
        Insert one employee.

        Raises:
            DatabaseError: If the insert fails (e.g. duplicate email)
        """
        employee = Employee(**to_column_values(fields))
        try:
            async with self._session.begin_nested():
                self._session.add(employee)
                await self._session.flush()
        except SQLAlchemyError as e:
            logger.warning("Employee insert failed", emp_code=fields.get("emp_code"), error=str(e))
            raise DatabaseError(
                message=f"Insert failed - {e.__class__.__name__}",
                details={"emp_code": fields.get("emp_code"), "error": str(e)},
            ) from e

        logger.debug("Employee created", emp_code=employee.emp_code)
        return employee

    async def update(self, employee: Employee, changes: dict[str, Any]) -> Employee:
        """
        Apply ``changes`` to an existing employee.

        Raises:
            DatabaseError: If the update fails
        """
        if not changes:
            return employee

        try:
            async with self._session.begin_nested():
                for name, value in to_column_values(changes).items():
                    setattr(employee, name, value)
                await self._session.flush()
        except SQLAlchemyError as e:
            logger.warning("Employee update failed", emp_code=employee.emp_code, error=str(e))
            raise DatabaseError(
                message=f"Update failed - {e.__class__.__name__}",
                details={"emp_code": employee.emp_code, "error": str(e)},
            ) from e

        logger.debug("Employee updated", emp_code=employee.emp_code, fields=sorted(changes))
        return employee
