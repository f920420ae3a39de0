"""
Prometheus Metrics for the Employee Import Service
==================================================

Metrics are exposed via the /metrics endpoint for Prometheus scraping.

Usage:
    from employee_import.api.metrics import IMPORT_JOBS_TOTAL, PROCESSING_TIME

    IMPORT_JOBS_TOTAL.labels(file_format="csv", status="parsed").inc()

    with PROCESSING_TIME.labels(phase="parsing").time():
        rows = parser.parse(data)
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Metric Definitions
# =============================================================================

# Import Job Metrics
IMPORT_JOBS_TOTAL = Counter(
    "employee_import_jobs_total",
    "Total import jobs by detected format and final status",
    ["file_format", "status"],  # status: parsed, failed
)

IMPORT_JOBS_IN_PROGRESS = Gauge(
    "employee_import_jobs_in_progress",
    "Number of import jobs currently processing",
)

EMPLOYEES_EXTRACTED = Counter(
    "employee_import_employees_extracted_total",
    "Employee drafts produced by import jobs",
    ["file_format", "validity"],  # validity: valid, invalid
)

# Processing Time Metrics
PROCESSING_TIME = Histogram(
    "employee_import_processing_seconds",
    "Processing time in seconds per phase",
    ["phase"],  # phase: upload, parsing, extraction, total
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, float("inf")],
)

# AI Client Metrics
AI_REQUESTS_TOTAL = Counter(
    "employee_import_ai_requests_total",
    "Total chat-completion requests",
    ["outcome"],  # outcome: success, http_error, transport_error, bad_response
)

AI_REQUEST_DURATION = Histogram(
    "employee_import_ai_request_seconds",
    "Chat-completion request duration in seconds",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, float("inf")],
)

# Object Store Metrics
UPLOADS_TOTAL = Counter(
    "employee_import_uploads_total",
    "Signed object store uploads by outcome",
    ["outcome"],  # outcome: success, failed, skipped
)

# Bulk CSV Metrics
BULK_ROWS_TOTAL = Counter(
    "employee_import_bulk_rows_total",
    "Bulk CSV rows by commit outcome",
    ["outcome"],  # outcome: created, updated, skipped
)

BULK_COMMITS_TOTAL = Counter(
    "employee_import_bulk_commits_total",
    "Bulk CSV commit requests",
    ["mode"],  # mode: dry_run, write, blocked
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_ai_request(outcome: str, duration_seconds: float) -> None:
    """
    Record one chat-completion request.

    Args:
        outcome: success, http_error, transport_error or bad_response
        duration_seconds: Wall-clock request duration
    """
    AI_REQUESTS_TOTAL.labels(outcome=outcome).inc()
    AI_REQUEST_DURATION.observe(duration_seconds)


def record_job_result(file_format: str, status: str, valid: int = 0, invalid: int = 0) -> None:
    """Record a finished import job and the drafts it produced."""
    IMPORT_JOBS_TOTAL.labels(file_format=file_format, status=status).inc()
    if valid:
        EMPLOYEES_EXTRACTED.labels(file_format=file_format, validity="valid").inc(valid)
    if invalid:
        EMPLOYEES_EXTRACTED.labels(file_format=file_format, validity="invalid").inc(invalid)


def record_phase_duration(phase: str, duration_seconds: float) -> None:
    """Record duration for a specific processing phase."""
    PROCESSING_TIME.labels(phase=phase).observe(duration_seconds)


def record_bulk_commit(mode: str, created: int = 0, updated: int = 0, skipped: int = 0) -> None:
    BULK_COMMITS_TOTAL.labels(mode=mode).inc()
    for outcome, count in (("created", created), ("updated", updated), ("skipped", skipped)):
        if count:
            BULK_ROWS_TOTAL.labels(outcome=outcome).inc(count)


# =============================================================================
# Metric Endpoint Setup
# =============================================================================


def get_metrics_app():
    """
    Get ASGI app for /metrics endpoint.

    Returns:
        ASGI application that serves Prometheus metrics
    """
    from prometheus_client import make_asgi_app

    return make_asgi_app()
