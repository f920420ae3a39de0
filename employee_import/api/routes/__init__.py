"""
API Routes
==========

Route modules for the employee import service.
"""

from employee_import.api.routes.bulk import router as bulk_router
from employee_import.api.routes.imports import router as imports_router

__all__ = ["bulk_router", "imports_router"]
