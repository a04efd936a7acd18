"""Row-level validation for bulk uploads.

Validation is a preview: it decides which rows the user is told are
importable. Rows with errors are reported as invalid, warnings are shown but
never block a row. The platform re-validates everything on submission.
"""
import logging
import re
from collections.abc import Callable
from typing import Any

from dateutil.parser import isoparse

from app.schemas.imports import ImportRow, UploadType, ValidationResult
from app.services.field_mapping import FIELD_TABLES, cell_text, resolve_fields

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
GENDERS = ("MALE", "FEMALE", "OTHER")
STAFF_ROLES = ("TEACHER", "FACULTY_SUPERVISOR")

Fields = dict[str, str | None]
RowRule = Callable[[Fields, set[str], list[str], list[str]], dict[str, Any]]


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_phone(value: str) -> bool:
    return len(re.sub(r"\D", "", value)) == 10


def is_date(value: str) -> bool:
    """True for ISO 8601 dates, optionally with a time part."""
    try:
        isoparse(value)
    except (ValueError, OverflowError):
        return False
    return True


def _seen_before(identifier: str | None, seen: set[str]) -> bool:
    """Record ``identifier`` and report whether it already appeared."""
    if not identifier:
        return False
    key = identifier.lower()
    if key in seen:
        return True
    seen.add(key)
    return False


# ─── Per-type rules ───

def _student_rules(fields: Fields, seen: set[str], errors: list[str], warnings: list[str]) -> dict[str, Any]:
    name = fields["name"]
    email = fields["email"]
    gender = fields["gender"]

    if not name:
        errors.append("Name is required")
    if not email or not is_email(email):
        errors.append("Valid email is required")
    elif _seen_before(email, seen):
        errors.append("Duplicate student entry in file")

    if gender and gender.upper() not in GENDERS:
        errors.append("Gender must be MALE, FEMALE, or OTHER")

    phone = fields["phoneNo"]
    if phone and not is_phone(phone):
        warnings.append("Phone number should be 10 digits")
    dob = fields["dateOfBirth"]
    if dob and not is_date(dob):
        warnings.append("Invalid date of birth format (use YYYY-MM-DD)")

    return {**fields, "gender": gender.upper() if gender else None}


def _staff_rules(fields: Fields, seen: set[str], errors: list[str], warnings: list[str]) -> dict[str, Any]:
    name = fields["name"]
    email = fields["email"]
    role = fields["role"]

    if not name:
        errors.append("Name is required")
    if not email or not is_email(email):
        errors.append("Valid email is required")
    elif _seen_before(email, seen):
        errors.append("Duplicate staff entry in file")

    if not role:
        errors.append("Role is required")
    elif role.upper() not in STAFF_ROLES:
        errors.append(f"Invalid role. Must be one of: {', '.join(STAFF_ROLES)}")

    phone = fields["phone"]
    if phone and not is_phone(phone):
        warnings.append("Phone number should be 10 digits")

    return {**fields, "role": role.upper() if role else None}


def _self_internship_rules(
    fields: Fields, seen: set[str], errors: list[str], warnings: list[str]
) -> dict[str, Any]:
    student_email = fields["studentEmail"]
    identifier = student_email or fields["rollNumber"] or fields["enrollmentNumber"]

    if not identifier:
        errors.append(
            "At least one student identifier (Email, Roll Number, or Enrollment Number) is required"
        )
    elif _seen_before(identifier, seen):
        errors.append("Duplicate student entry in file")

    if not fields["companyName"]:
        errors.append("Company name is required")

    if student_email and not is_email(student_email):
        errors.append("Invalid student email format")

    for field, label in (
        ("companyEmail", "company"),
        ("hrEmail", "HR"),
        ("facultyMentorEmail", "faculty mentor"),
    ):
        value = fields[field]
        if value and not is_email(value):
            warnings.append(f"Invalid {label} email format")

    hr_contact = fields["hrContact"]
    if hr_contact and not is_phone(hr_contact):
        warnings.append("HR contact should be 10 digits")

    for field, label in (("startDate", "start"), ("endDate", "end")):
        value = fields[field]
        if value and not is_date(value):
            warnings.append(f"Invalid {label} date format (use YYYY-MM-DD)")

    return {**fields, "studentIdentifier": identifier}


ROW_RULES: dict[UploadType, RowRule] = {
    UploadType.STUDENTS: _student_rules,
    UploadType.STAFF: _staff_rules,
    UploadType.SELF_INTERNSHIPS: _self_internship_rules,
}


# ─── Entry point ───

def validate_rows(upload_type: UploadType, rows: list[dict[str, Any]]) -> ValidationResult:
    """Partition ``rows`` into valid and invalid, keeping file order.

    Row numbers are spreadsheet row numbers: the header is row 1, so the
    first data row is row 2.
    """
    mappings = FIELD_TABLES[upload_type]
    rule = ROW_RULES[upload_type]
    seen: set[str] = set()
    result = ValidationResult()

    for index, raw in enumerate(rows):
        errors: list[str] = []
        warnings: list[str] = []
        record = rule(resolve_fields(raw, mappings), seen, errors, warnings)
        row = ImportRow(
            row_number=index + 2,
            record=record,
            raw={str(k): cell_text(v) for k, v in raw.items()},
            errors=errors,
            warnings=warnings,
        )
        if row.is_valid:
            result.valid.append(row)
        else:
            result.invalid.append(row)

    logger.info(
        "Validated %d %s rows: %d valid, %d invalid",
        len(rows), upload_type.value, len(result.valid), len(result.invalid),
    )
    return result
