"""Pydantic schemas for spreadsheet bulk imports."""
import enum
import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadType(str, enum.Enum):
    STUDENTS = "students"
    STAFF = "staff"
    SELF_INTERNSHIPS = "self-internships"

    @property
    def label(self) -> str:
        return {
            UploadType.STUDENTS: "students",
            UploadType.STAFF: "staff",
            UploadType.SELF_INTERNSHIPS: "internships",
        }[self]


class WizardStep(str, enum.Enum):
    UPLOAD = "UPLOAD"
    VALIDATE = "VALIDATE"
    SUBMITTING = "SUBMITTING"
    COMPLETE = "COMPLETE"


# ─── Validation ───

class ImportRow(CamelModel):
    row_number: int
    record: dict[str, Any]
    raw: dict[str, Any] = {}
    errors: list[str] = []
    warnings: list[str] = []

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ValidationResult(CamelModel):
    valid: list[ImportRow] = []
    invalid: list[ImportRow] = []

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.invalid)


# ─── Submission ───

class UploadResult(CamelModel):
    """Synchronous import outcome as reported by the platform."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    total: int = 0
    success: int = 0
    failed: int = 0
    success_records: list[dict[str, Any]] = []
    failed_records: list[dict[str, Any]] = []


class QueuedUpload(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    job_id: str
    message: str | None = None


class Notice(BaseModel):
    level: Literal["success", "info", "warning", "error"]
    message: str


class UploadProgress(CamelModel):
    sent: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.sent * 100 / self.total)


# ─── API ───

class ConfirmImportRequest(CamelModel):
    background: bool = False
    institution_id: str | None = None


class WizardOut(CamelModel):
    id: uuid.UUID
    upload_type: UploadType
    step: WizardStep
    filename: str | None = None
    validation: ValidationResult | None = None
    result: UploadResult | None = None
    queued: QueuedUpload | None = None
    progress: UploadProgress = Field(default_factory=UploadProgress)
    notice: Notice | None = None
