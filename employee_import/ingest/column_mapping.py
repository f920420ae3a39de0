"""
Column Mapping Registry
=======================

Static registry mapping spreadsheet/CSV header synonyms to canonical
employee fields.

Header cells are normalized before lookup: quotes stripped, trimmed,
lower-cased, punctuation removed and whitespace collapsed to ``_``. So
``"Employee Code"``, ``"emp code"`` and ``"ID"`` all resolve to
``emp_code``. Unmapped headers are ignored, never errors.
"""

import re

# Canonical field -> accepted synonyms (already in normalized form).
# Registry order is lookup order: the first field listing a synonym owns it.
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "emp_code": (
        "emp_code",
        "employee_code",
        "emp_id",
        "employee_id",
        "empcode",
        "code",
        "id",
    ),
    "first_name": ("first_name", "firstname", "name_first", "fname", "given_name"),
    "last_name": ("last_name", "lastname", "name_last", "lname", "surname", "family_name"),
    "full_name": ("full_name", "fullname", "name", "employee_name"),
    "email": (
        "email",
        "email_address",
        "email_id",
        "emailid",
        "personal_email",
        "official_email",
        "mail",
    ),
    "phone": (
        "phone",
        "phone_number",
        "phone_no",
        "mobile",
        "mobile_number",
        "mobile_no",
        "contact",
        "contact_number",
    ),
    "department": ("department", "dept", "division"),
    "designation": ("designation", "role", "title", "position", "job_title"),
    "location": ("location", "work_location", "office", "city", "base_location"),
    "doj": ("doj", "date_of_joining", "joining_date", "start_date", "dateofjoining"),
    "status": ("status", "employee_status", "employment_status"),
    "monthly_ctc": ("monthly_ctc", "monthlyctc", "ctc", "salary", "monthly_salary"),
}

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def _build_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for field, synonyms in FIELD_SYNONYMS.items():
        for synonym in synonyms:
            lookup.setdefault(synonym, field)
    return lookup


_LOOKUP = _build_lookup()


def normalize_header(header: str) -> str:
    """
    Normalize a raw header cell into a lookup key.

    Example:
        >>> normalize_header('"Date of Joining "')
        'date_of_joining'
    """
    key = header.replace('"', "").strip().lower()
    key = _PUNCTUATION_RE.sub("", key)
    return _WHITESPACE_RE.sub("_", key).strip("_")


def map_header(header: str) -> str | None:
    """
    Resolve a header cell to its canonical field.

    Returns:
        Canonical field name, or None when the header is not recognised
    """
    return _LOOKUP.get(normalize_header(header))


def map_headers(headers: list[str]) -> list[str | None]:
    """
    Map a header row, keeping only the first column for each field.

    Later duplicate columns (e.g. two "Email" columns) map to None so the
    first matching column wins.
    """
    seen: set[str] = set()
    mapped: list[str | None] = []
    for header in headers:
        field = map_header(header)
        if field is None or field in seen:
            mapped.append(None)
            continue
        seen.add(field)
        mapped.append(field)
    return mapped
