"""
Bulk CSV Import (Preview / Commit) and Draft Saving
===================================================

Two-phase flow for pasted CSV text:

    preview  parse + strict normalize + validate; counts, row errors and a
             sample; never writes
    commit   re-parses and re-validates from scratch (no client state is
             trusted); refuses to write while any row is invalid; dryRun
             runs every step except the final write

Rows are matched to existing employees by email (case-insensitive) or
emp_code. Updates only write fields that are non-empty and differ from the
stored value. A failing row write becomes a warning and the batch continues.

``save_drafts`` persists reviewed drafts from the file-import flow.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from employee_import.api.metrics import record_bulk_commit
from employee_import.config.settings import Settings, get_settings
from employee_import.db.models import Employee
from employee_import.db.repositories.employees_repo import EmployeesRepository, employee_values
from employee_import.ingest.csv_parser import CsvParser, CsvTable
from employee_import.schemas.domain import DEFAULT_STATUS, EmployeeRecordDraft, FieldError
from employee_import.schemas.responses import (
    BulkCommitResponse,
    BulkPreviewResponse,
    GeneratedCode,
    PreviewCounts,
    PreviewRow,
    RowError,
    SaveDraftsResponse,
)
from employee_import.services.normalizer import revalidate, validate_record
from employee_import.utils.errors import DatabaseError, ValidationError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

GENERAL_FIELD = "general"


# =============================================================================
# Employee code allocation
# =============================================================================


def next_code_number(codes: Iterable[str | None], prefix: str) -> int:
    """One past the highest numeric suffix among ``{prefix}-NNNN`` codes."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    numbers = [int(m.group(1)) for code in codes if code and (m := pattern.match(code))]
    return max(numbers) + 1 if numbers else 1


class CodeAllocator:
    """Hands out ``{prefix}-{n:04d}`` codes, skipping any already taken."""

    def __init__(self, prefix: str, start: int, taken: Iterable[str | None] = ()) -> None:
        self._prefix = prefix
        self._next = start
        self._taken = {code for code in taken if code}

    def allocate(self) -> str:
        while True:
            code = f"{self._prefix}-{self._next:04d}"
            self._next += 1
            if code not in self._taken:
                self._taken.add(code)
                return code


# =============================================================================
# Row validation shared by preview and commit
# =============================================================================


@dataclass
class ValidatedRow:
    """One bulk CSV row after strict normalization."""

    row_index: int
    draft: EmployeeRecordDraft | None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.draft is not None and not self.errors


def validate_table(table: CsvTable) -> list[ValidatedRow]:
    """Normalize every data row in strict mode, flagging malformed rows."""
    header_count = len(table.headers)
    validated: list[ValidatedRow] = []

    for row in table.rows:
        if row.cell_count != header_count:
            validated.append(
                ValidatedRow(
                    row_index=row.row_number,
                    draft=None,
                    errors=[
                        FieldError(
                            field=GENERAL_FIELD,
                            message=(
                                f"Row has {row.cell_count} columns "
                                f"but header has {header_count}"
                            ),
                        )
                    ],
                )
            )
            continue

        fields, errors = validate_record(row.to_candidate(), strict=True)
        draft = EmployeeRecordDraft(
            **fields,
            validation_errors=[error.message for error in errors],
        )
        validated.append(ValidatedRow(row_index=row.row_number, draft=draft, errors=errors))

    return validated


class _ExistingIndex:
    """Lookup of stored employees by lower-cased email and by code."""

    def __init__(self, employees: list[Employee]) -> None:
        self.by_email: dict[str, Employee] = {}
        self.by_code: dict[str, Employee] = {}
        for employee in employees:
            self.add(employee)

    def add(self, employee: Employee) -> None:
        if employee.email:
            self.by_email[employee.email.lower()] = employee
        if employee.emp_code:
            self.by_code[employee.emp_code] = employee

    def match(self, email: str | None, emp_code: str | None) -> Employee | None:
        if email and email.lower() in self.by_email:
            return self.by_email[email.lower()]
        if emp_code:
            return self.by_code.get(emp_code)
        return None


def build_changes(values: dict[str, Any], existing: Employee) -> dict[str, Any]:
    """Non-empty incoming values that differ from what is stored."""
    stored = employee_values(existing)
    return {
        name: value
        for name, value in values.items()
        if value not in (None, "") and stored.get(name) != value
    }


# =============================================================================
# Service
# =============================================================================


class BulkImportService:
    """
    Preview, commit and save operations over the employees table.

    Usage:
        async with get_session() as session:
            service = BulkImportService(EmployeesRepository(session))
            preview = await service.preview(csv_text)
    """

    def __init__(self, repository: EmployeesRepository, settings: Settings | None = None) -> None:
        self._repo = repository
        self._settings = settings or get_settings()

    @staticmethod
    def _read(csv_text: str, delimiter: str) -> CsvTable:
        table = CsvParser(delimiter=delimiter).read_table(csv_text)
        if not table.headers or not table.rows:
            raise ValidationError(
                message="CSV must have at least header and one data row",
                details={"rows": len(table.rows)},
            )
        return table

    async def preview(self, csv_text: str, delimiter: str = ",") -> BulkPreviewResponse:
        """Validate pasted CSV and report what a commit would do."""
        table = self._read(csv_text, delimiter)
        rows = validate_table(table)
        existing = _ExistingIndex(await self._repo.list_all())

        errors: list[RowError] = []
        sample: list[PreviewRow] = []
        create = update = invalid = 0

        for row in rows:
            errors.extend(
                RowError(row_index=row.row_index, field=e.field, message=e.message)
                for e in row.errors
            )
            if not row.is_valid:
                invalid += 1
            if row.draft is None:
                continue

            matched = existing.match(row.draft.email, row.draft.emp_code)
            intent = "update" if matched is not None else "create"
            if row.is_valid:
                if matched is not None:
                    update += 1
                else:
                    create += 1

            if len(sample) < self._settings.preview_sample_size:
                sample.append(
                    PreviewRow(
                        row_index=row.row_index,
                        intent=intent,
                        emp_code_auto=not row.draft.emp_code,
                        record=row.draft,
                    )
                )

        counts = PreviewCounts(total=len(rows), create=create, update=update, invalid=invalid)
        logger.info("Bulk preview completed", **counts.model_dump())

        return BulkPreviewResponse(
            columns=table.columns,
            sample=sample,
            counts=counts,
            errors=errors,
        )

    async def commit(
        self,
        csv_text: str,
        delimiter: str = ",",
        auto_prefix: str = "SM",
        start_number: int | None = None,
        dry_run: bool = False,
    ) -> BulkCommitResponse:
        """
        Re-validate and write the CSV.

        Raises:
            ValidationError: If any row is invalid and this is not a dry run
        """
        table = self._read(csv_text, delimiter)
        rows = validate_table(table)
        invalid_rows = [row for row in rows if not row.is_valid]

        if invalid_rows and not dry_run:
            record_bulk_commit("blocked")
            raise ValidationError(
                message=f"{len(invalid_rows)} row(s) have validation errors; fix them before committing",
                details={
                    "invalid": len(invalid_rows),
                    "errors": [
                        {"rowIndex": row.row_index, "field": e.field, "message": e.message}
                        for row in invalid_rows
                        for e in row.errors
                    ],
                },
            )

        employees = await self._repo.list_all()
        existing = _ExistingIndex(employees)
        codes = [employee.emp_code for employee in employees]
        allocator = CodeAllocator(
            auto_prefix,
            start_number or next_code_number(codes, auto_prefix),
            taken=codes,
        )

        result = BulkCommitResponse(dry_run=dry_run)

        for row in rows:
            if not row.is_valid:
                result.skipped += 1
                result.warnings.extend(
                    f"Row {row.row_index}: {e.message}, skipped" for e in row.errors
                )
                continue

            values = row.draft.field_values()
            matched = existing.match(values["email"], values["emp_code"])

            # Defaults only apply to new employees; updates write CSV values alone.
            if matched is None:
                if not values["status"]:
                    values["status"] = DEFAULT_STATUS
                if not values["emp_code"]:
                    values["emp_code"] = allocator.allocate()
                    result.generated_codes.append(
                        GeneratedCode(email=values["email"], emp_code=values["emp_code"])
                    )

            if dry_run:
                if matched is not None:
                    result.updated += 1
                else:
                    result.created += 1
                continue

            try:
                if matched is not None:
                    await self._repo.update(matched, build_changes(values, matched))
                    result.updated += 1
                else:
                    existing.add(await self._repo.create(values))
                    result.created += 1
            except DatabaseError as e:
                result.skipped += 1
                result.warnings.append(f"Row {row.row_index}: {e.message}")

        record_bulk_commit(
            "dry_run" if dry_run else "write",
            created=0 if dry_run else result.created,
            updated=0 if dry_run else result.updated,
            skipped=result.skipped,
        )
        logger.info(
            "Bulk commit completed",
            dry_run=dry_run,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            generated=len(result.generated_codes),
        )
        return result

    async def save_drafts(self, drafts: list[EmployeeRecordDraft]) -> SaveDraftsResponse:
        """
        Persist reviewed drafts.

        Unselected or invalid drafts are skipped. Existing employees are
        matched by emp_code, then email.
        """
        created = updated = skipped = 0
        codes = await self._repo.list_codes_with_prefix(self._settings.emp_code_prefix)
        allocator = CodeAllocator(
            self._settings.emp_code_prefix,
            next_code_number(codes, self._settings.emp_code_prefix),
            taken=codes,
        )

        for draft in drafts:
            if not draft.should_save:
                skipped += 1
                continue

            checked = revalidate(draft, strict=True)
            if not checked.is_valid:
                logger.info(
                    "Skipping invalid draft",
                    first_name=checked.first_name,
                    errors=checked.validation_errors,
                )
                skipped += 1
                continue

            values = checked.field_values()
            existing = None
            if values["emp_code"]:
                existing = await self._repo.find_by_code(values["emp_code"])
            if existing is None and values["email"]:
                existing = await self._repo.find_by_email(values["email"])

            try:
                if existing is not None:
                    changes = {k: v for k, v in values.items() if v not in (None, "")}
                    await self._repo.update(existing, changes)
                    updated += 1
                else:
                    values["status"] = values["status"] or DEFAULT_STATUS
                    values["emp_code"] = values["emp_code"] or allocator.allocate()
                    await self._repo.create(values)
                    created += 1
            except DatabaseError as e:
                logger.warning("Draft save failed", first_name=checked.first_name, error=e.message)
                skipped += 1

        logger.info(
            "Drafts saved",
            created=created,
            updated=updated,
            skipped=skipped,
            total=len(drafts),
        )
        return SaveDraftsResponse(created=created, updated=updated, skipped=skipped, total=len(drafts))
