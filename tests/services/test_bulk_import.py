"""
Bulk Import Service Tests
=========================

Preview, commit and draft saving against a mocked employees repository.
"""

from unittest.mock import AsyncMock

import pytest

from employee_import.db.models import Employee
from employee_import.db.repositories.employees_repo import EmployeesRepository
from employee_import.schemas.domain import EmployeeRecordDraft
from employee_import.services.bulk_import import (
    BulkImportService,
    CodeAllocator,
    next_code_number,
)
from employee_import.utils.errors import DatabaseError, ValidationError

HEADER = "Employee Code,First Name,Email,Department\n"
VALID_ROWS = ",Jane,jane@example.com,Finance\nE010,Ravi,RAVI@example.com,Digital\n"
INVALID_ROW = ",,nobody@example.com,Finance\n"


@pytest.fixture
def existing() -> list[Employee]:
    return [
        Employee(
            emp_code="SM-0003",
            first_name="Ravi",
            email="ravi@example.com",
            department="Creative",
        ),
        Employee(emp_code="SM-0007", first_name="Asha", email="asha@example.com"),
    ]


@pytest.fixture
def repo(existing) -> AsyncMock:
    mock = AsyncMock(spec=EmployeesRepository)
    mock.list_all = AsyncMock(return_value=existing)
    mock.create = AsyncMock(side_effect=lambda values: Employee(**values))
    mock.update = AsyncMock(side_effect=lambda employee, changes: employee)
    mock.find_by_code = AsyncMock(return_value=None)
    mock.find_by_email = AsyncMock(return_value=None)
    mock.list_codes_with_prefix = AsyncMock(return_value=["SM-0001", "SM-0002"])
    return mock


@pytest.fixture
def service(repo, settings) -> BulkImportService:
    return BulkImportService(repo, settings)


class TestCodeAllocation:
    def test_next_code_number(self):
        assert next_code_number(["SM-0003", "SM-0012", "XX-0099", None, "SM-abc"], "SM") == 13
        assert next_code_number([], "SM") == 1

    def test_allocator_skips_taken_codes(self):
        allocator = CodeAllocator("SM", 7, taken=["SM-0007", "SM-0009"])

        assert [allocator.allocate() for _ in range(3)] == ["SM-0008", "SM-0010", "SM-0011"]


class TestPreview:
    @pytest.mark.asyncio
    async def test_counts_errors_and_sample(self, service, repo):
        preview = await service.preview(HEADER + VALID_ROWS + INVALID_ROW)

        assert preview.columns == ["emp_code", "first_name", "email", "department"]
        assert preview.counts.model_dump() == {"total": 3, "create": 1, "update": 1, "invalid": 1}
        assert [(e.row_index, e.field, e.message) for e in preview.errors] == [
            (3, "first_name", "First name is required")
        ]
        assert [row.intent for row in preview.sample] == ["create", "update", "create"]
        assert preview.sample[0].emp_code_auto is True
        assert preview.sample[1].emp_code_auto is False
        repo.create.assert_not_awaited()
        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_row(self, service):
        preview = await service.preview("First Name,Email\nJane,jane@example.com,extra\n")

        assert preview.counts.invalid == 1
        assert preview.counts.total == 1
        assert preview.errors[0].field == "general"
        assert preview.errors[0].message == "Row has 3 columns but header has 2"
        assert preview.sample == []

    @pytest.mark.asyncio
    async def test_sample_is_capped(self, service, settings):
        rows = "".join(f"Person{i},p{i}@example.com\n" for i in range(15))

        preview = await service.preview("First Name,Email\n" + rows)

        assert preview.counts.total == 15
        assert len(preview.sample) == settings.preview_sample_size

    @pytest.mark.asyncio
    async def test_custom_delimiter(self, service):
        preview = await service.preview("First Name;Email\nJane;jane@example.com\n", ";")

        assert preview.counts.create == 1

    @pytest.mark.asyncio
    async def test_header_only_is_rejected(self, service):
        with pytest.raises(ValidationError, match="at least header and one data row"):
            await service.preview("First Name,Email\n")


class TestCommit:
    @pytest.mark.asyncio
    async def test_invalid_rows_block_commit(self, service, repo):
        with pytest.raises(ValidationError) as exc_info:
            await service.commit(HEADER + VALID_ROWS + INVALID_ROW)

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["invalid"] == 1
        repo.create.assert_not_awaited()
        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates_and_updates(self, service, repo):
        result = await service.commit(HEADER + VALID_ROWS)

        assert (result.created, result.updated, result.skipped) == (1, 1, 0)
        assert result.dry_run is False
        assert [(c.email, c.emp_code) for c in result.generated_codes] == [
            ("jane@example.com", "SM-0008")
        ]

        created_values = repo.create.await_args.args[0]
        assert created_values["emp_code"] == "SM-0008"
        assert created_values["status"] == "Active"

        matched, changes = repo.update.await_args.args
        assert matched.emp_code == "SM-0003"
        assert changes["department"] == "Digital"
        assert "first_name" not in changes

    @pytest.mark.asyncio
    async def test_update_keeps_stored_code_and_status(self, service, repo):
        stored = Employee(
            emp_code="SM-0004", first_name="Ravi", email="ravi@example.com", status="Terminated"
        )
        repo.list_all.return_value = [stored]

        result = await service.commit(
            "First Name,Email,Location\nRavi,ravi@example.com,Pune\nJane,jane@example.com,\n"
        )

        assert (result.created, result.updated) == (1, 1)
        assert [(c.email, c.emp_code) for c in result.generated_codes] == [
            ("jane@example.com", "SM-0005")
        ]
        matched, changes = repo.update.await_args.args
        assert matched is stored
        assert changes == {"location": "Pune"}

    @pytest.mark.asyncio
    async def test_dry_run_generates_codes_for_creates_only(self, service, repo):
        repo.list_all.return_value = [
            Employee(emp_code="SM-0004", first_name="Ravi", email="ravi@example.com")
        ]

        result = await service.commit(
            "First Name,Email\nRavi,ravi@example.com\nJane,jane@example.com\n", dry_run=True
        )

        assert (result.created, result.updated) == (1, 1)
        assert [c.email for c in result.generated_codes] == ["jane@example.com"]

    @pytest.mark.asyncio
    async def test_start_number_and_prefix(self, service):
        result = await service.commit(
            "First Name,Email\nJane,jane@example.com\nOmar,omar@example.com\n",
            auto_prefix="SM",
            start_number=7,
        )

        assert [c.emp_code for c in result.generated_codes] == ["SM-0008", "SM-0009"]

    @pytest.mark.asyncio
    async def test_dry_run_reports_without_writing(self, service, repo):
        result = await service.commit(HEADER + VALID_ROWS + INVALID_ROW, dry_run=True)

        assert result.dry_run is True
        assert (result.created, result.updated, result.skipped) == (1, 1, 1)
        assert result.warnings == ["Row 3: First name is required, skipped"]
        assert [c.emp_code for c in result.generated_codes] == ["SM-0008"]
        repo.create.assert_not_awaited()
        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_failure_becomes_warning(self, service, repo):
        repo.create.side_effect = DatabaseError("Insert failed - duplicate key")

        result = await service.commit(HEADER + VALID_ROWS)

        assert (result.created, result.updated, result.skipped) == (0, 1, 1)
        assert result.warnings == ["Row 1: Insert failed - duplicate key"]


class TestSaveDrafts:
    @pytest.mark.asyncio
    async def test_save_drafts(self, service, repo):
        existing = Employee(emp_code="SM-0001", first_name="R", email="ravi@example.com")
        repo.find_by_code.side_effect = lambda code: existing if code == "SM-0001" else None
        unselected = EmployeeRecordDraft(first_name="Skip")
        unselected.should_save = False
        drafts = [
            EmployeeRecordDraft(first_name="Jane", email="jane@example.com"),
            unselected,
            EmployeeRecordDraft(first_name="", validation_errors=["First name is required"]),
            EmployeeRecordDraft(emp_code="SM-0001", first_name="Ravi", phone="+919812345678"),
        ]

        result = await service.save_drafts(drafts)

        assert (result.created, result.updated, result.skipped, result.total) == (1, 1, 2, 4)

        created_values = repo.create.await_args.args[0]
        assert created_values["emp_code"] == "SM-0003"
        assert created_values["status"] == "Active"

        matched, changes = repo.update.await_args.args
        assert matched is existing
        assert changes == {"emp_code": "SM-0001", "first_name": "Ravi", "phone": "+919812345678"}

    @pytest.mark.asyncio
    async def test_drafts_are_revalidated_strictly(self, service, repo):
        draft = EmployeeRecordDraft(first_name="Jane", email="jane@")

        result = await service.save_drafts([draft])

        assert result.skipped == 1
        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_matches_by_email(self, service, repo):
        existing = Employee(emp_code="SM-0002", first_name="Jane", email="jane@example.com")
        repo.find_by_email.return_value = existing

        result = await service.save_drafts(
            [EmployeeRecordDraft(first_name="Jane", email="jane@example.com", location="Pune")]
        )

        assert result.updated == 1
        repo.find_by_email.assert_awaited_once_with("jane@example.com")
