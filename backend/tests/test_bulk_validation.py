"""Tests for row-level bulk upload validation and column alias resolution."""
from datetime import datetime

from app.schemas.imports import UploadType
from app.services.bulk_validation import validate_rows
from app.services.field_mapping import SELF_INTERNSHIP_FIELDS, cell_text, resolve_field, resolve_fields


def _internships(*rows):
    return validate_rows(UploadType.SELF_INTERNSHIPS, list(rows))


# ─── Alias resolution ─────────────────────────────────────────────────────────

def test_first_non_empty_alias_wins():
    row = {"Student Email": "  ", "Email": "b@x.com", "studentEmail": "c@x.com"}
    assert resolve_field(row, ("Student Email", "Email", "studentEmail")) == "b@x.com"


def test_resolve_fields_returns_every_canonical_field():
    fields = resolve_fields({"Company": "Acme"}, SELF_INTERNSHIP_FIELDS)
    assert fields["companyName"] == "Acme"
    assert fields["studentEmail"] is None
    assert set(fields) == {m.field for m in SELF_INTERNSHIP_FIELDS}


def test_cell_text_normalizes_spreadsheet_values():
    assert cell_text(12345.0) == "12345"
    assert cell_text(float("nan")) is None
    assert cell_text(datetime(2025, 1, 15)) == "2025-01-15"
    assert cell_text("  R1 ") == "R1"
    assert cell_text("") is None


# ─── Self-identified internships ──────────────────────────────────────────────

def test_row_with_email_and_company_is_valid():
    result = _internships({"Student Email": "a@b.com", "Company Name": "Acme"})

    assert len(result.valid) == 1
    assert result.invalid == []
    row = result.valid[0]
    assert row.record["studentIdentifier"] == "a@b.com"
    assert row.errors == []
    assert row.row_number == 2


def test_row_without_company_is_invalid():
    result = _internships({"Roll Number": "R1"})

    assert result.valid == []
    row = result.invalid[0]
    assert "Company name is required" in row.errors
    assert row.record["studentIdentifier"] == "R1"


def test_row_without_any_identifier_is_invalid():
    result = _internships({"Company Name": "Acme", "HR Name": "Priya"})

    row = result.invalid[0]
    assert any("identifier" in e for e in row.errors)


def test_duplicate_identifier_is_case_insensitive():
    result = _internships(
        {"Student Email": "Asha@College.edu", "Company Name": "Acme"},
        {"Email": "asha@college.edu", "Company Name": "Globex"},
    )

    assert [r.row_number for r in result.valid] == [2]
    assert [r.row_number for r in result.invalid] == [3]
    assert any("Duplicate" in e for e in result.invalid[0].errors)


def test_first_duplicate_is_judged_on_its_own_fields():
    result = _internships(
        {"Roll Number": "R7"},
        {"Roll Number": "r7", "Company Name": "Acme"},
    )

    first, second = result.invalid
    assert first.errors == ["Company name is required"]
    assert second.errors == ["Duplicate student entry in file"]


def test_identifier_prefers_email_over_roll_and_enrollment():
    result = _internships(
        {"Roll Number": "R1", "Enrollment Number": "E1", "Company Name": "Acme"},
        {"Enrollment Number": "E2", "Company Name": "Acme"},
    )

    assert [r.record["studentIdentifier"] for r in result.valid] == ["R1", "E2"]


def test_bad_student_email_is_an_error():
    result = _internships({"Student Email": "not-an-email", "Company Name": "Acme"})

    assert "Invalid student email format" in result.invalid[0].errors


def test_bad_secondary_emails_are_warnings_only():
    result = _internships({
        "Roll Number": "R1",
        "Company Name": "Acme",
        "Company Email": "not-an-email",
        "HR Email": "not-an-email",
        "Mentor Email": "not-an-email",
    })

    row = result.valid[0]
    assert row.errors == []
    assert row.warnings == [
        "Invalid company email format",
        "Invalid HR email format",
        "Invalid faculty mentor email format",
    ]


def test_phone_and_date_anomalies_do_not_exclude_row():
    result = _internships({
        "Roll Number": "R1",
        "Company Name": "Acme",
        "HR Contact": "12345",
        "Start Date": "someday",
        "End Date": "2025-06-30",
    })

    row = result.valid[0]
    assert "HR contact should be 10 digits" in row.warnings
    assert "Invalid start date format (use YYYY-MM-DD)" in row.warnings
    assert not any("end date" in w for w in row.warnings)


def test_formatted_phone_with_ten_digits_passes():
    result = _internships({"Roll Number": "R1", "Company Name": "Acme", "HR Contact": "(981) 555-0142"})

    assert result.valid[0].warnings == []


def test_partition_preserves_file_order():
    result = _internships(
        {"Roll Number": "R1", "Company Name": "A"},
        {"Roll Number": "R2"},
        {"Roll Number": "R3", "Company Name": "C"},
        {"Roll Number": "R4"},
    )

    assert [r.row_number for r in result.valid] == [2, 4]
    assert [r.row_number for r in result.invalid] == [3, 5]


# ─── Students and staff ───────────────────────────────────────────────────────

def test_student_rules():
    result = validate_rows(UploadType.STUDENTS, [
        {"Name": "Asha", "Email": "asha@x.com", "Gender": "female"},
        {"Student Name": "Ravi", "email": "bad"},
        {"Name": "Meera", "Email": "m@x.com", "Gender": "unknown"},
        {"Name": "Asha Again", "Email": "ASHA@x.com"},
    ])

    assert [r.row_number for r in result.valid] == [2]
    assert result.valid[0].record["gender"] == "FEMALE"
    errors = {r.row_number: r.errors for r in result.invalid}
    assert errors[3] == ["Valid email is required"]
    assert errors[4] == ["Gender must be MALE, FEMALE, or OTHER"]
    assert errors[5] == ["Duplicate student entry in file"]


def test_staff_rules():
    result = validate_rows(UploadType.STAFF, [
        {"Full Name": "K. Singh", "Email": "k@x.com", "Role": "teacher"},
        {"Name": "L. Kaur", "Email": "l@x.com"},
        {"Name": "M. Gill", "Email": "m@x.com", "Role": "PRINCIPAL"},
    ])

    assert result.valid[0].record["role"] == "TEACHER"
    errors = {r.row_number: r.errors for r in result.invalid}
    assert errors[3] == ["Role is required"]
    assert errors[4] == ["Invalid role. Must be one of: TEACHER, FACULTY_SUPERVISOR"]


def test_dates_must_be_iso_formatted():
    result = _internships({
        "Roll Number": "R1",
        "Company Name": "Acme",
        "Start Date": "31/12/2025",
        "End Date": "2300-01-31",
    })

    row = result.valid[0]
    assert "Invalid start date format (use YYYY-MM-DD)" in row.warnings
    assert not any("end date" in w for w in row.warnings)


def test_excel_datetime_cells_count_as_dates():
    result = _internships({
        "Roll Number": "R1",
        "Company Name": "Acme",
        "Start Date": datetime(2025, 1, 15),
        "End Date": datetime(2025, 6, 30, 17, 30),
    })

    assert result.valid[0].warnings == []
