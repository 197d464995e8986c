"""Tests for display formatting helpers."""
from datetime import date, datetime

from clinic_reports.reporting.formatting import (
    display,
    display_date,
    format_short_date,
    full_name,
    is_present,
    parse_date,
    sanitize_filename,
    with_unit,
)


class TestPresence:
    """Absent values are None or blank strings only."""

    def test_none_and_blank_are_absent(self):
        assert not is_present(None)
        assert not is_present("")
        assert not is_present("   ")

    def test_falsy_values_are_present(self):
        assert is_present(0)
        assert is_present(False)
        assert is_present([])

    def test_display_substitutes_fallback(self):
        assert display(None) == "Not specified"
        assert display("  ", "N/A") == "N/A"

    def test_display_renders_values(self):
        assert display(" Accountant ") == "Accountant"
        assert display(0) == "0"
        assert display(True) == "Yes"
        assert display(False) == "No"


class TestUnitsAndNames:

    def test_with_unit(self):
        assert with_unit(62, "kg") == "62 kg"
        assert with_unit(98, "%", separator="") == "98%"
        assert with_unit(None, "kg") == "Not recorded"

    def test_full_name_skips_absent_parts(self):
        assert full_name({"first_name": "Jane", "middle_name": "", "last_name": "Doe"}) == "Jane Doe"
        assert full_name({"first_name": "Jane", "middle_name": "Q", "last_name": "Doe"}) == "Jane Q Doe"

    def test_full_name_with_prefix(self):
        record = {"first_name": "Jane", "ec_first_name": "John", "ec_last_name": "Doe"}
        assert full_name(record, prefix="ec_") == "John Doe"

    def test_full_name_fallback(self):
        assert full_name(None) == "Not provided"
        assert full_name({}, fallback="Unknown Patient") == "Unknown Patient"


class TestDates:

    def test_parse_iso_date(self):
        assert parse_date("2025-03-07") == date(2025, 3, 7)

    def test_parse_utc_timestamp(self):
        assert parse_date("2025-03-07T10:15:00Z") == date(2025, 3, 7)

    def test_parse_passthrough(self):
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_date(datetime(2024, 1, 2, 5, 6)) == date(2024, 1, 2)

    def test_parse_invalid(self):
        assert parse_date("next tuesday") is None
        assert parse_date(None) is None
        assert parse_date(20250307) is None

    def test_short_date_is_unpadded(self):
        assert format_short_date(date(2025, 3, 7)) == "3/7/2025"
        assert format_short_date(date(2025, 12, 25)) == "12/25/2025"

    def test_display_date(self):
        assert display_date("2025-01-15T09:30:00Z") == "1/15/2025"
        assert display_date("sometime in May") == "sometime in May"
        assert display_date(None, "N/A") == "N/A"


class TestFilenames:

    def test_spaces_become_underscores(self):
        assert sanitize_filename("Patient_Report_Jane Doe") == "Patient_Report_Jane_Doe"

    def test_path_separators_removed(self):
        cleaned = sanitize_filename("Patient_Report_../../etc/passwd")
        assert "/" not in cleaned
        assert cleaned.startswith("Patient_Report_")

    def test_header_breaking_characters_removed(self):
        cleaned = sanitize_filename('Jane"\r\nSet-Cookie: x')
        assert '"' not in cleaned
        assert "\n" not in cleaned

    def test_empty_result_falls_back(self):
        assert sanitize_filename("///") == "report"
