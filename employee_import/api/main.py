"""
FastAPI Application Entry Point
===============================

Main FastAPI application with health check, middleware,
and lifecycle management.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from employee_import import __version__
from employee_import.api.metrics import get_metrics_app
from employee_import.config.settings import get_settings
from employee_import.db.connection import close_database, init_database
from employee_import.db.connection import health_check as db_health_check
from employee_import.services.import_ledger import close_redis_client, get_redis_client
from employee_import.utils.errors import EmployeeImportError
from employee_import.utils.logger import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)

# Configure logging at module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown of the record store pool and the ledger
    Redis connection.
    """
    settings = get_settings()
    logger.info(
        "employee-import service starting",
        version=__version__,
        environment=settings.environment,
        port=settings.fastapi_port,
        object_store_enabled=settings.object_store_enabled,
    )

    try:
        await init_database(settings)
    except EmployeeImportError as e:
        logger.error("Failed to initialize database", error=e.message)
        # Continue startup - health check reports degraded

    try:
        redis = await get_redis_client()
        await redis.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error("Failed to connect to Redis", error=str(e))

    yield

    logger.info("employee-import service shutting down")
    await close_database()
    await close_redis_client()


def create_app() -> FastAPI:
    """
    FastAPI application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Employee Import API",
        description=(
            "Converts uploaded CSV, spreadsheet, PDF, DOCX and image files into "
            "validated employee records, with an auditable import ledger and "
            "signed object storage uploads."
        ),
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Request Logging Middleware
    # -------------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """
        Log all incoming requests with timing and correlation ID.

        Adds X-Request-ID header for tracing and X-Process-Time header
        with request duration in seconds.
        """
        request_id = request.headers.get("x-request-id") or str(uuid4())
        start_time = time.perf_counter()
        bind_request_context(request_id, method=request.method, path=str(request.url.path))

        logger.info(
            "Request received",
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            process_time = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(process_time * 1000, 2),
            )
        finally:
            clear_request_context()

        return response

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(EmployeeImportError)
    async def employee_import_error_handler(
        request: Request, exc: EmployeeImportError
    ) -> JSONResponse:
        """Map application errors to their status code."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Application error",
            error_type=type(exc).__name__,
            message=exc.message,
            details=exc.details,
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "type": type(exc).__name__,
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "Unexpected error",
            error_type=type(exc).__name__,
            message=str(exc),
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "type": "InternalServerError",
            },
        )

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check endpoint",
        response_model=dict[str, Any],
    )
    async def health_check() -> dict[str, Any]:
        """
        Check service health status.

        Returns health status of the service and its dependencies:
        - Database connectivity
        - Redis connectivity
        """
        health_status: dict[str, Any] = {
            "status": "healthy",
            "version": __version__,
            "service": "employee-import",
            "checks": {
                "object_store": {
                    "status": "configured" if settings.object_store_enabled else "disabled"
                },
            },
        }

        db_status = await db_health_check()
        health_status["checks"]["database"] = db_status
        if db_status.get("status") != "healthy":
            health_status["status"] = "degraded"

        try:
            redis = await get_redis_client()
            start = time.perf_counter()
            await redis.ping()
            health_status["checks"]["redis"] = {
                "status": "healthy",
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            }
        except Exception as e:
            health_status["checks"]["redis"] = {
                "status": "unhealthy",
                "error": str(e),
            }
            health_status["status"] = "degraded"

        return health_status

    # -------------------------------------------------------------------------
    # API Info Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/",
        tags=["Info"],
        summary="API information",
    )
    async def api_info() -> dict[str, str]:
        """Return basic API information."""
        return {
            "service": "employee-import",
            "version": __version__,
            "description": "Employee file import and validation service",
            "docs": "/docs",
        }

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    from employee_import.api.routes import bulk_router, imports_router

    app.include_router(bulk_router, prefix="/imports/bulk", tags=["Bulk CSV"])
    app.include_router(imports_router, prefix="/imports", tags=["Imports"])

    app.mount("/metrics", get_metrics_app())

    return app


# Create application instance
app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "employee_import.api.main:app",
        host=settings.fastapi_host,
        port=settings.fastapi_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
