"""Repositories for the record store tables."""

from employee_import.db.repositories.employees_repo import EmployeesRepository
from employee_import.db.repositories.roles_repo import RolesRepository

__all__ = [
    "EmployeesRepository",
    "RolesRepository",
]
