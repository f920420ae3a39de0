"""
Normalizer Tests
================

Field policies, strict vs lenient validation and review edits.
"""

from datetime import date

import pytest

from employee_import.schemas.domain import ExtractedRecord
from employee_import.services.normalizer import (
    FIRST_NAME_REQUIRED,
    INVALID_DEPARTMENT,
    INVALID_EMAIL,
    normalize_ctc,
    normalize_date,
    normalize_department,
    normalize_phone,
    normalize_record,
    normalize_status,
    parse_iso_date,
    revalidate,
    update_field,
)


class TestPhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("9876543210", "+919876543210"),
            ("09876543210", "+919876543210"),
            ("(098) 765-43210", "+919876543210"),
            ("+91 98765 43210", "+919876543210"),
            ("+1 (415) 555-0100", "+14155550100"),
            ("Tel: +919876543210", "+919876543210"),
            ("(+91) 98765 43210", "+919876543210"),
            ("12345", ""),
            ("", ""),
        ],
    )
    def test_normalize_phone(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["9876543210", "+14155550100", "0-98765-4321"])
    def test_idempotent(self, raw):
        once = normalize_phone(raw)
        assert normalize_phone(once) == once


class TestDate:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-01-05", "2024-01-05"),
            ("5/1/2024", "2024-01-05"),
            ("05-01-2024", "2024-01-05"),
            ("15/04/2023", "2023-04-15"),
            ("March 3, 2021", "2021-03-03"),
            ("tbd", ""),
            ("32/13/2024", ""),
            ("31/02/2024", ""),
            ("2024-13-32", ""),
        ],
    )
    def test_normalize_date(self, raw, expected):
        assert normalize_date(raw) == expected


class TestCtc:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("55000", 55000.0),
            ("INR 55,000.50", 55000.5),
            (42000, 42000.0),
            (1250.75, 1250.75),
            ("abc", None),
            (float("nan"), None),
        ],
    )
    def test_normalize_ctc(self, raw, expected):
        assert normalize_ctc(raw) == expected


class TestClosedSets:
    def test_department_is_case_insensitive(self):
        assert normalize_department("admin/it") == ("Admin/IT", True)
        assert normalize_department("Mars") == ("Mars", False)

    def test_status_defaults_to_active(self):
        assert normalize_status("on hold") == "On Hold"
        assert normalize_status("Bogus") == "Active"


class TestNormalizeRecord:
    def test_first_name_is_required(self):
        draft = normalize_record(ExtractedRecord(email="a@example.com"))

        assert draft.first_name == ""
        assert draft.validation_errors == [FIRST_NAME_REQUIRED]
        assert not draft.is_valid

    def test_lenient_mode_drops_invalid_email(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane", email="jane@"))

        assert draft.email is None
        assert draft.is_valid

    def test_strict_mode_flags_invalid_email(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane", email="jane@"), strict=True)

        assert draft.email == "jane@"
        assert draft.validation_errors == [INVALID_EMAIL]

    def test_unparseable_values_are_cleared_without_errors(self):
        draft = normalize_record(
            ExtractedRecord(first_name="Jane", phone="123", doj="someday", monthly_ctc="n/a")
        )

        assert draft.phone is None
        assert draft.doj is None
        assert draft.monthly_ctc is None
        assert draft.is_valid

    def test_impossible_day_first_date_is_cleared(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane", doj="32/13/2024"))

        assert draft.doj is None
        assert draft.is_valid

    def test_whitespace_is_trimmed(self):
        draft = normalize_record(ExtractedRecord(first_name="  Jane ", last_name="   "))

        assert draft.first_name == "Jane"
        assert draft.last_name is None

    def test_is_valid_matches_errors(self):
        draft = normalize_record(ExtractedRecord(first_name="", department="Mars"))

        assert draft.validation_errors == [FIRST_NAME_REQUIRED, INVALID_DEPARTMENT]
        assert draft.is_valid is (len(draft.validation_errors) == 0)

    def test_from_loose_ignores_nested_and_unknown_values(self):
        candidate = ExtractedRecord.from_loose(
            {"first_name": "Jane", "monthly_ctc": 50000, "phone": ["1"], "salary_band": "B"}
        )

        assert candidate.monthly_ctc == 50000
        assert candidate.phone is None


class TestReviewEdits:
    def test_update_field_revalidates(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane", department="Mars"))
        assert not draft.is_valid

        fixed = update_field(draft, "department", "finance")

        assert fixed.department == "Finance"
        assert fixed.is_valid
        assert draft.department == "Mars"

    def test_update_field_uses_strict_email_check(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane"))

        edited = update_field(draft, "email", "not-an-email")

        assert edited.email == "not-an-email"
        assert edited.validation_errors == [INVALID_EMAIL]

    def test_update_field_rejects_unknown_field(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane"))

        with pytest.raises(KeyError):
            update_field(draft, "salary_band", "B")

    def test_revalidate_keeps_selection(self):
        draft = normalize_record(ExtractedRecord(first_name="Jane"))
        draft.should_save = False

        assert revalidate(draft).should_save is False


def test_parse_iso_date():
    assert parse_iso_date("2023-04-15") == date(2023, 4, 15)
    assert parse_iso_date("") is None
    assert parse_iso_date("2023-13-40") is None
