"""
Domain Models
=============

Internal domain models for each stage of the import pipeline.

Pipeline stages:
    RawRow            one tabular data row with header-mapped raw strings
    ExtractedRecord   loosely-typed candidate (from a RawRow or the AI client)
    EmployeeRecordDraft  normalized, validated record ready for human review

Closed sets for ``department`` and ``status`` live here so the normalizer,
the AI prompt and the API share one definition.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

# =============================================================================
# Closed Sets
# =============================================================================

DEPARTMENTS: tuple[str, ...] = (
    "Digital",
    "Film Events",
    "Utsav Events",
    "Corp Events",
    "Finance",
    "Housekeeping",
    "Admin/IT",
    "Creative",
    "Managerial",
    "Others",
)

EMPLOYEE_STATUSES: tuple[str, ...] = ("Active", "Inactive", "On Hold", "Terminated")

DEFAULT_STATUS = "Active"

# Fields carried by every draft, in display order
EMPLOYEE_FIELDS: tuple[str, ...] = (
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


# =============================================================================
# Stage 1: Tabular rows
# =============================================================================


class RawRow(BaseModel):
    """
    A single data row after header mapping.

    Attributes:
        row_number: 1-based position among the data rows (header excluded)
        values: Canonical field name to raw cell text (empty cells omitted)
        cell_count: Number of cells the row actually had
    """

    row_number: int = Field(ge=1)
    values: dict[str, str] = Field(default_factory=dict)
    cell_count: int = Field(default=0, ge=0)

    def has_identity(self) -> bool:
        """A row is a candidate only if it names someone or has an email."""
        return bool(
            self.values.get("first_name")
            or self.values.get("full_name")
            or self.values.get("email")
        )

    def to_candidate(self) -> "ExtractedRecord":
        """Convert mapped cells into a candidate record, splitting full names."""
        values: dict[str, Any] = dict(self.values)
        full_name = values.pop("full_name", None)
        if full_name and not values.get("first_name"):
            parts = full_name.split()
            values["first_name"] = parts[0] if parts else ""
            if len(parts) > 1 and not values.get("last_name"):
                values["last_name"] = " ".join(parts[1:])
        return ExtractedRecord.model_validate(values)


# =============================================================================
# Stage 2: Candidate records
# =============================================================================


class ExtractedRecord(BaseModel):
    """
    Loosely-typed employee candidate.

    Produced from tabular rows or from the AI client's JSON. Every field is
    optional; numbers are accepted where the model may emit them. Unknown
    keys are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    emp_code: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    department: str | None = None
    designation: str | None = None
    location: str | None = None
    doj: str | None = None
    status: str | None = None
    monthly_ctc: str | int | float | None = None

    @classmethod
    def from_loose(cls, data: dict[str, Any]) -> "ExtractedRecord":
        """
        Build a candidate from untrusted JSON.

        Scalars are stringified for text fields; nested values are dropped.
        ``monthly_ctc`` keeps numeric values as numbers.
        """
        values: dict[str, Any] = {}
        for name in EMPLOYEE_FIELDS:
            value = data.get(name)
            if value is None or isinstance(value, (bool, list, dict)):
                continue
            if name == "monthly_ctc" and isinstance(value, (int, float)):
                values[name] = value
            else:
                values[name] = str(value)
        return cls.model_validate(values)


# =============================================================================
# Stage 3: Validated drafts
# =============================================================================


class FieldError(BaseModel):
    """A single per-field validation problem. Collected, never raised."""

    field: str
    message: str


class EmployeeRecordDraft(BaseModel):
    """
    Normalized employee record awaiting review or commit.

    ``is_valid`` is derived from ``validation_errors`` so the two can never
    disagree. Drafts are rebuilt by the normalizer after every change.
    """

    emp_code: str | None = None
    first_name: str = ""
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    department: str | None = None
    designation: str | None = None
    location: str | None = None
    doj: str | None = None
    status: str | None = None
    monthly_ctc: float | None = None
    validation_errors: list[str] = Field(default_factory=list)
    should_save: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.validation_errors

    def field_values(self) -> dict[str, Any]:
        """Return only the employee fields (no review metadata)."""
        return {name: getattr(self, name) for name in EMPLOYEE_FIELDS}

    def to_candidate(self) -> ExtractedRecord:
        return ExtractedRecord.model_validate(self.field_values())
