"""
Import Routes Tests
===================

Endpoint wiring, auth and error mapping for /imports. Services are replaced
through FastAPI dependency overrides; the app lifespan is not started.
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from employee_import.api.dependencies import (
    get_bulk_import_service,
    get_current_user,
    get_db_session,
    get_import_service,
    require_importer,
)
from employee_import.api.main import create_app
from employee_import.schemas.domain import EmployeeRecordDraft
from employee_import.schemas.responses import SaveDraftsResponse
from employee_import.services.auth import CurrentUser
from employee_import.services.bulk_import import BulkImportService
from employee_import.services.import_ledger import (
    JOB_PREFIX,
    PROCESSING_SET_KEY,
    ImportJob,
    ImportJobStatus,
    ImportLedger,
    get_import_ledger,
)
from employee_import.services.import_service import ImportResult, ImportService
from employee_import.utils.errors import AIExtractionError

HR_USER = CurrentUser(id="hr-1", email="hr@example.com")


@pytest.fixture
def app():
    """Create FastAPI app instance."""
    return create_app()


@pytest.fixture
def client(app):
    """Test client with an authorized HR caller."""
    app.dependency_overrides[require_importer] = lambda: HR_USER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_import_service(app) -> AsyncMock:
    service = AsyncMock(spec=ImportService)
    app.dependency_overrides[get_import_service] = lambda: service
    return service


@pytest.fixture
def ledger(app, memory_redis, settings) -> ImportLedger:
    ledger = ImportLedger(memory_redis, settings)
    app.dependency_overrides[get_import_ledger] = lambda: ledger
    return ledger


def store_job(memory_redis, job: ImportJob) -> None:
    memory_redis.values[f"{JOB_PREFIX}{job.id}"] = job.to_json()
    if job.status == ImportJobStatus.PROCESSING:
        memory_redis.sets.setdefault(PROCESSING_SET_KEY, set()).add(str(job.id))


def upload_body(content: bytes, file_name: str = "staff.csv", file_type: str = "text/csv") -> dict:
    return {
        "fileName": file_name,
        "fileType": file_type,
        "fileSize": len(content),
        "fileData": base64.b64encode(content).decode(),
    }


class TestProcessImport:
    def test_returns_drafts(self, client, mock_import_service):
        job = ImportJob(file_name="staff.csv", mime_type="text/csv", status=ImportJobStatus.PARSED)
        mock_import_service.process_upload.return_value = ImportResult(
            job=job,
            employees=[EmployeeRecordDraft(first_name="Jane", email="jane@example.com")],
            upload_status="skipped",
        )

        response = client.post(
            "/imports/process", json=upload_body(b"First Name,Email\nJane,jane@example.com\n")
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["importId"] == str(job.id)
        assert data["uploadStatus"] == "skipped"
        assert data["employees"][0]["first_name"] == "Jane"
        assert data["employees"][0]["is_valid"] is True
        assert "X-Request-ID" in response.headers

        kwargs = mock_import_service.process_upload.await_args.kwargs
        assert kwargs["data"] == b"First Name,Email\nJane,jane@example.com\n"
        assert kwargs["uploaded_by"] == "hr-1"
        assert kwargs["mime_type"] == "text/csv"

    def test_invalid_base64(self, client, mock_import_service):
        body = upload_body(b"x")
        body["fileData"] = "not base64!!"

        response = client.post("/imports/process", json=body)

        assert response.status_code == 422
        assert response.json()["type"] == "ValidationError"
        mock_import_service.process_upload.assert_not_awaited()

    def test_missing_file_name(self, client, mock_import_service):
        body = upload_body(b"x")
        del body["fileName"]

        response = client.post("/imports/process", json=body)

        assert response.status_code == 422

    def test_stage_failure_maps_to_500(self, client, mock_import_service):
        mock_import_service.process_upload.side_effect = AIExtractionError("AI API error: 500")

        response = client.post(
            "/imports/process", json=upload_body(b"%PDF-1.4", "scan.pdf", "application/pdf")
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "AI API error: 500"
        assert response.json()["type"] == "AIExtractionError"


class TestImportJobRoutes:
    def test_get_job(self, client, ledger, memory_redis):
        job = ImportJob(
            file_name="staff.csv",
            mime_type="text/csv",
            file_size_bytes=42,
            status=ImportJobStatus.FAILED,
            result_payload={"error": "AI API error: 500"},
        )
        store_job(memory_redis, job)

        response = client.get(f"/imports/{job.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == str(job.id)
        assert data["fileName"] == "staff.csv"
        assert data["fileSizeBytes"] == 42
        assert data["status"] == "failed"
        assert data["resultPayload"] == {"error": "AI API error: 500"}

    def test_unknown_job(self, client, ledger):
        response = client.get("/imports/00000000-0000-4000-8000-000000000000")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["type"] == "JobNotFoundError"

    def test_recover_stale(self, client, ledger, memory_redis):
        stale = ImportJob(
            file_name="old.pdf",
            status=ImportJobStatus.PROCESSING,
            started_at=datetime.now(timezone.utc) - timedelta(hours=3),
        )
        fresh = ImportJob(
            file_name="new.pdf",
            status=ImportJobStatus.PROCESSING,
            started_at=datetime.now(timezone.utc),
        )
        store_job(memory_redis, stale)
        store_job(memory_redis, fresh)

        response = client.post("/imports/recover-stale")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"recovered": 1, "jobIds": [str(stale.id)]}
        failed = ImportJob.from_json(memory_redis.values[f"{JOB_PREFIX}{stale.id}"])
        assert failed.result_payload == {"error": "Processing timed out"}


class TestSaveDrafts:
    def test_save(self, app, client):
        service = AsyncMock(spec=BulkImportService)
        service.save_drafts.return_value = SaveDraftsResponse(
            created=1, updated=0, skipped=1, total=2
        )
        app.dependency_overrides[get_bulk_import_service] = lambda: service

        response = client.post(
            "/imports/save",
            json={
                "employees": [
                    {"first_name": "Jane", "email": "jane@example.com", "is_valid": True},
                    {"first_name": "Ravi", "should_save": False},
                ]
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "created": 1,
            "updated": 0,
            "skipped": 1,
            "total": 2,
        }
        (drafts,) = service.save_drafts.await_args.args
        assert [d.first_name for d in drafts] == ["Jane", "Ravi"]
        assert drafts[1].should_save is False


class TestAccessControl:
    def test_missing_token(self, app):
        async def no_session() -> AsyncGenerator[MagicMock, None]:
            yield MagicMock()

        app.dependency_overrides[get_db_session] = no_session

        response = TestClient(app).get("/imports/00000000-0000-4000-8000-000000000000")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "Unauthorized"

    def test_caller_without_role(self, app):
        result = MagicMock()
        result.first.return_value = None
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        async def fake_session() -> AsyncGenerator[MagicMock, None]:
            yield session

        app.dependency_overrides[get_current_user] = lambda: HR_USER
        app.dependency_overrides[get_db_session] = fake_session

        response = TestClient(app).post("/imports/recover-stale")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "Access denied. HR role required."


class TestServiceEndpoints:
    def test_api_info(self, client):
        response = client.get("/")

        assert response.json()["service"] == "employee-import"

    def test_health_degraded_when_redis_down(self, client):
        redis = AsyncMock()
        redis.ping.side_effect = ConnectionError("refused")

        with (
            patch(
                "employee_import.api.main.db_health_check",
                AsyncMock(return_value={"status": "healthy"}),
            ),
            patch("employee_import.api.main.get_redis_client", AsyncMock(return_value=redis)),
        ):
            response = client.get("/health")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["redis"]["status"] == "unhealthy"

    def test_metrics(self, client):
        response = client.get("/metrics/")

        assert response.status_code == status.HTTP_200_OK
        assert "employee_import_jobs_total" in response.text
