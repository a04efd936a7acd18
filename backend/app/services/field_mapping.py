"""Column-header alias tables and the resolver that applies them.

Each upload type has a table of canonical field -> accepted spreadsheet
headers, in priority order. The first header holding a non-empty value wins.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from app.schemas.imports import UploadType


@dataclass(frozen=True)
class FieldMapping:
    field: str
    aliases: tuple[str, ...]


def _m(field: str, *aliases: str) -> FieldMapping:
    return FieldMapping(field=field, aliases=aliases)


STUDENT_FIELDS: tuple[FieldMapping, ...] = (
    _m("name", "Name", "name", "Student Name"),
    _m("email", "Email", "email"),
    _m("phoneNo", "Phone", "phone", "Contact", "phoneNo"),
    _m("rollNumber", "Roll Number", "rollNumber"),
    _m("enrollmentNumber", "Enrollment Number", "enrollmentNumber", "Admission Number"),
    _m("batchName", "Batch", "Batch Name", "batchName"),
    _m("branchName", "Branch", "Branch Name", "branchName"),
    _m("gender", "Gender", "gender"),
    _m("dateOfBirth", "Date of Birth", "DOB", "dateOfBirth"),
)

STAFF_FIELDS: tuple[FieldMapping, ...] = (
    _m("name", "Name", "name", "Full Name"),
    _m("email", "Email", "email"),
    _m("phone", "Phone", "phone", "Contact", "phoneNo"),
    _m("role", "Role", "role"),
    _m("designation", "Designation", "designation"),
    _m("department", "Department", "department"),
    _m("employeeId", "Employee ID", "employeeId", "Employee Id"),
)

SELF_INTERNSHIP_FIELDS: tuple[FieldMapping, ...] = (
    _m("studentEmail", "Student Email", "Email", "studentEmail"),
    _m("rollNumber", "Roll Number", "rollNumber", "Roll No"),
    _m("enrollmentNumber", "Enrollment Number", "enrollmentNumber", "Admission Number"),
    _m("companyName", "Company Name", "companyName", "Company"),
    _m("companyAddress", "Company Address", "companyAddress"),
    _m("companyContact", "Company Contact", "companyContact", "Company Phone"),
    _m("companyEmail", "Company Email", "companyEmail"),
    _m("hrName", "HR Name", "hrName", "Contact Person"),
    _m("hrDesignation", "HR Designation", "hrDesignation"),
    _m("hrContact", "HR Contact", "hrContact", "HR Phone"),
    _m("hrEmail", "HR Email", "hrEmail"),
    _m("jobProfile", "Job Profile", "jobProfile", "Role", "Position"),
    _m("stipend", "Stipend", "stipend"),
    _m("startDate", "Start Date", "startDate"),
    _m("endDate", "End Date", "endDate"),
    _m("duration", "Duration", "duration"),
    _m("facultyMentorName", "Faculty Mentor Name", "Mentor Name", "facultyMentorName"),
    _m("facultyMentorEmail", "Faculty Mentor Email", "Mentor Email", "facultyMentorEmail"),
    _m("facultyMentorContact", "Faculty Mentor Contact", "Mentor Contact", "facultyMentorContact"),
    _m("facultyMentorDesignation", "Faculty Mentor Designation", "facultyMentorDesignation"),
    _m("joiningLetterUrl", "Joining Letter URL", "joiningLetterUrl"),
)

FIELD_TABLES: dict[UploadType, tuple[FieldMapping, ...]] = {
    UploadType.STUDENTS: STUDENT_FIELDS,
    UploadType.STAFF: STAFF_FIELDS,
    UploadType.SELF_INTERNSHIPS: SELF_INTERNSHIP_FIELDS,
}


def cell_text(value: Any) -> str | None:
    """Normalize a spreadsheet cell to stripped text, or None when blank."""
    # NaN and NaT are the only values not equal to themselves
    if value is None or value != value:
        return None
    if isinstance(value, float):
        # Excel stores roll numbers and phones as floats
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        if value.hour == value.minute == value.second == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def resolve_field(row: dict[str, Any], aliases: tuple[str, ...]) -> str | None:
    for alias in aliases:
        text = cell_text(row.get(alias))
        if text is not None:
            return text
    return None


def resolve_fields(row: dict[str, Any], mappings: tuple[FieldMapping, ...]) -> dict[str, str | None]:
    return {m.field: resolve_field(row, m.aliases) for m in mappings}
