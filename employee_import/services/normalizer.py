"""
Employee Record Normalizer
==========================

Pure, deterministic field normalization and validation.

Policies differ per field:
    first_name   required; empty -> error
    email        invalid -> dropped (lenient) or kept with an error (strict)
    phone        normalized to +91 E.164; too short -> cleared, no error
    department   closed set; unknown -> kept with an error for human review
    status       closed set; unknown -> coerced to "Active", no error
    doj          normalized to YYYY-MM-DD; unparseable -> cleared, no error
    monthly_ctc  digits and dots parsed as float; unparseable -> cleared

``strict`` selects human-review behaviour; AI and upload parsing use the
lenient mode.
"""

import math
import re
from datetime import date

from dateutil import parser as date_parser

from employee_import.schemas.domain import (
    DEFAULT_STATUS,
    DEPARTMENTS,
    EMPLOYEE_STATUSES,
    EmployeeRecordDraft,
    ExtractedRecord,
    FieldError,
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_SPLIT_RE = re.compile(r"[/-]")
_PHONE_STRIP_RE = re.compile(r"[^\d+]")
_CTC_STRIP_RE = re.compile(r"[^0-9.]")

MIN_PHONE_LENGTH = 7
INDIA_PREFIX = "+91"

FIRST_NAME_REQUIRED = "First name is required"
INVALID_EMAIL = "Invalid email format"
INVALID_DEPARTMENT = "Invalid department"

_DEPARTMENT_LOOKUP = {name.lower(): name for name in DEPARTMENTS}
_STATUS_LOOKUP = {name.lower(): name for name in EMPLOYEE_STATUSES}


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to E.164, defaulting to India (+91).

    Returns "" when too few digits remain. Idempotent:
    ``normalize_phone("+919876543210") == "+919876543210"``.
    """
    cleaned = _PHONE_STRIP_RE.sub("", phone)
    digits = cleaned.replace("+", "")

    if cleaned.startswith("+"):
        international = f"+{digits}"
        return international if len(international) >= MIN_PHONE_LENGTH else ""

    digits = digits.lstrip("0")
    if len(digits) >= MIN_PHONE_LENGTH:
        return f"{INDIA_PREFIX}{digits}"
    return ""


def normalize_date(value: str) -> str:
    """
    Normalize a joining date to ISO ``YYYY-MM-DD``.

    Order: ISO as-is, then day-first ``DD/MM/YYYY`` / ``DD-MM-YYYY``, then a
    generic parse. Returns "" when nothing matches.
    """
    value = value.strip()
    if ISO_DATE_RE.match(value):
        try:
            return date.fromisoformat(value).isoformat()
        except ValueError:
            return ""

    parts = _DATE_SPLIT_RE.split(value)
    if len(parts) == 3 and len(parts[2]) == 4:
        day, month, year = parts
        try:
            return date(int(year), int(month), int(day)).isoformat()
        except ValueError:
            pass

    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        return ""
    return parsed.date().isoformat() if parsed else ""


def normalize_ctc(value: str | int | float) -> float | None:
    """Parse a monthly CTC; unparseable or NaN values yield None."""
    if isinstance(value, str):
        cleaned = _CTC_STRIP_RE.sub("", value)
        try:
            amount = float(cleaned)
        except ValueError:
            return None
    else:
        amount = float(value)
    return None if math.isnan(amount) else amount


def normalize_department(value: str) -> tuple[str, bool]:
    """Return (department, is_known). Unknown values are returned trimmed."""
    canonical = _DEPARTMENT_LOOKUP.get(value.lower())
    return (canonical, True) if canonical else (value, False)


def normalize_status(value: str) -> str:
    return _STATUS_LOOKUP.get(value.lower(), DEFAULT_STATUS)


def validate_record(
    candidate: ExtractedRecord,
    strict: bool = False,
) -> tuple[dict[str, object], list[FieldError]]:
    """
    Normalize every field of a candidate.

    Args:
        candidate: Loosely-typed input record
        strict: Keep invalid emails (flagged) instead of dropping them

    Returns:
        (normalized field values, collected field errors)
    """
    errors: list[FieldError] = []
    fields: dict[str, object] = {
        "emp_code": _clean(candidate.emp_code),
        "last_name": _clean(candidate.last_name),
        "designation": _clean(candidate.designation),
        "location": _clean(candidate.location),
    }

    first_name = _clean(candidate.first_name) or ""
    if not first_name:
        errors.append(FieldError(field="first_name", message=FIRST_NAME_REQUIRED))
    fields["first_name"] = first_name

    email = _clean(candidate.email)
    if email and not is_valid_email(email):
        if strict:
            errors.append(FieldError(field="email", message=INVALID_EMAIL))
        else:
            email = None
    fields["email"] = email

    phone = _clean(candidate.phone)
    fields["phone"] = (normalize_phone(phone) or None) if phone else None

    department = _clean(candidate.department)
    if department:
        department, known = normalize_department(department)
        if not known:
            errors.append(FieldError(field="department", message=INVALID_DEPARTMENT))
    fields["department"] = department

    status = _clean(candidate.status)
    fields["status"] = normalize_status(status) if status else None

    doj = _clean(candidate.doj)
    fields["doj"] = (normalize_date(doj) or None) if doj else None

    ctc = candidate.monthly_ctc
    if isinstance(ctc, str):
        ctc = _clean(ctc)
    fields["monthly_ctc"] = normalize_ctc(ctc) if ctc is not None else None

    return fields, errors


def normalize_record(candidate: ExtractedRecord, strict: bool = False) -> EmployeeRecordDraft:
    """Build a validated draft from a candidate record."""
    fields, errors = validate_record(candidate, strict=strict)
    return EmployeeRecordDraft(
        **fields,
        validation_errors=[error.message for error in errors],
    )


def revalidate(draft: EmployeeRecordDraft, strict: bool = True) -> EmployeeRecordDraft:
    """Re-run normalization, preserving the review selection."""
    refreshed = normalize_record(draft.to_candidate(), strict=strict)
    refreshed.should_save = draft.should_save
    return refreshed


def update_field(
    draft: EmployeeRecordDraft,
    field: str,
    value: str | float | None,
    strict: bool = True,
) -> EmployeeRecordDraft:
    """
    Return a new draft with one field changed and validation re-run.

    Raises:
        KeyError: If ``field`` is not an employee field
    """
    values = draft.field_values()
    if field not in values:
        raise KeyError(field)
    values[field] = value
    refreshed = normalize_record(ExtractedRecord.from_loose(values), strict=strict)
    refreshed.should_save = draft.should_save
    return refreshed


def parse_iso_date(value: str | None) -> date | None:
    """Convert a normalized ``doj`` back into a date for the record store."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
