"""Bulk-import wizard: the upload → validate → submit → complete flow.

    UPLOAD ──load_file──▶ VALIDATE ──submit──▶ SUBMITTING ──▶ COMPLETE
      ▲                      │                     │              │
      └───────cancel─────────┘◀──submit failed─────┘              │
      └────────────────────────reset (upload another file)────────┘

No path skips VALIDATE, and COMPLETE only accepts reset.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from app.core.session import SessionContext
from app.schemas.imports import (
    Notice,
    QueuedUpload,
    UploadProgress,
    UploadResult,
    UploadType,
    ValidationResult,
    WizardOut,
    WizardStep,
)
from app.services.bulk_submit import UPLOAD_FAILED, outcome_notice, submit_import
from app.services.bulk_validation import validate_rows
from app.services.platform import PlatformAPIError, PlatformClient
from app.services.spreadsheet import ImportFileRejected, read_rows

logger = logging.getLogger(__name__)

ALLOWED_STEPS: dict[str, frozenset[WizardStep]] = {
    "load_file": frozenset({WizardStep.UPLOAD}),
    "cancel": frozenset({WizardStep.VALIDATE}),
    "submit": frozenset({WizardStep.VALIDATE}),
    "reset": frozenset({WizardStep.COMPLETE}),
}


class InvalidWizardTransition(Exception):
    def __init__(self, action: str, step: WizardStep):
        self.action = action
        self.step = step
        self.message = f"Cannot {action.replace('_', ' ')} while the wizard is in {step.value}"
        super().__init__(self.message)


class ImportSubmissionRefused(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class WizardNotFound(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ImportWizard:
    """State of one bulk-upload attempt."""

    def __init__(self, upload_type: UploadType, owner_id: str):
        self.id = uuid.uuid4()
        self.upload_type = upload_type
        self.owner_id = owner_id
        self.step = WizardStep.UPLOAD
        self.filename: str | None = None
        self.content: bytes | None = None
        self.validation: ValidationResult | None = None
        self.outcome: UploadResult | QueuedUpload | None = None
        self.progress = UploadProgress()
        self.notice: Notice | None = None
        self.touched_at = _now()

    def _require(self, action: str) -> None:
        if self.step not in ALLOWED_STEPS[action]:
            raise InvalidWizardTransition(action, self.step)
        self.touched_at = _now()

    def _clear(self) -> None:
        self.filename = None
        self.content = None
        self.validation = None
        self.outcome = None
        self.progress = UploadProgress()
        self.notice = None
        self.step = WizardStep.UPLOAD

    # ─── Transitions ───

    def load_file(
        self,
        filename: str,
        content: bytes,
        *,
        max_rows: int,
        max_bytes: int | None = None,
    ) -> ValidationResult:
        """Parse and validate a file. A rejected file leaves the wizard in UPLOAD."""
        self._require("load_file")
        try:
            rows = read_rows(content, filename, max_rows=max_rows, max_bytes=max_bytes)
        except ImportFileRejected as exc:
            self.notice = Notice(level="error", message=exc.message)
            raise

        validation = validate_rows(self.upload_type, rows)
        self.filename = filename
        self.content = content
        self.validation = validation
        self.step = WizardStep.VALIDATE

        if validation.invalid:
            self.notice = Notice(
                level="warning",
                message=(
                    f"Found {len(validation.invalid)} invalid record(s). "
                    "Please review before uploading."
                ),
            )
        else:
            self.notice = Notice(
                level="success", message=f"All {len(validation.valid)} record(s) are valid!"
            )
        return validation

    def cancel(self) -> None:
        self._require("cancel")
        self._clear()

    def reset(self) -> None:
        """Start over with another file; the only way out of COMPLETE."""
        self._require("reset")
        self._clear()

    async def submit(
        self,
        client: PlatformClient,
        session: SessionContext,
        *,
        background: bool = False,
        institution_id: str | None = None,
    ) -> UploadResult | QueuedUpload:
        self._require("submit")
        if not self.validation or not self.validation.valid:
            raise ImportSubmissionRefused("No valid records to upload")
        if not self.content or not self.filename:
            raise ImportSubmissionRefused("File not found. Please upload again.")
        target = session.resolve_institution(institution_id)

        self.step = WizardStep.SUBMITTING
        self.progress = UploadProgress()
        try:
            outcome = await submit_import(
                client,
                session.access_token,
                self.upload_type,
                filename=self.filename,
                content=self.content,
                background=background,
                institution_id=target,
                on_progress=self._record_progress,
            )
        except PlatformAPIError as exc:
            logger.warning("Wizard %s submission failed: %s", self.id, exc.message)
            self._submission_failed(exc.message)
            raise
        except BaseException:
            # includes cancellation when the console drops the request
            logger.exception("Wizard %s submission aborted", self.id)
            self._submission_failed(UPLOAD_FAILED)
            raise

        self.outcome = outcome
        self.notice = outcome_notice(self.upload_type, outcome)
        self.step = WizardStep.COMPLETE
        self.touched_at = _now()
        return outcome

    def _submission_failed(self, message: str) -> None:
        """SUBMITTING → VALIDATE, keeping the file so the user can retry."""
        self.step = WizardStep.VALIDATE
        self.notice = Notice(level="error", message=message)
        self.touched_at = _now()

    def _record_progress(self, sent: int, total: int) -> None:
        self.progress = UploadProgress(sent=sent, total=total)

    def to_out(self) -> WizardOut:
        return WizardOut(
            id=self.id,
            upload_type=self.upload_type,
            step=self.step,
            filename=self.filename,
            validation=self.validation,
            result=self.outcome if isinstance(self.outcome, UploadResult) else None,
            queued=self.outcome if isinstance(self.outcome, QueuedUpload) else None,
            progress=self.progress,
            notice=self.notice,
        )


class WizardRegistry:
    """Process-local store of open wizards, keyed by id and scoped to their owner."""

    def __init__(self, ttl: timedelta):
        self.ttl = ttl
        self._wizards: dict[uuid.UUID, ImportWizard] = {}

    def __len__(self) -> int:
        return len(self._wizards)

    def _evict_expired(self) -> None:
        cutoff = _now() - self.ttl
        expired = [
            wid for wid, w in self._wizards.items()
            if w.touched_at < cutoff and w.step != WizardStep.SUBMITTING
        ]
        for wid in expired:
            del self._wizards[wid]
        if expired:
            logger.info("Evicted %d idle import wizards", len(expired))

    def create(self, upload_type: UploadType, owner_id: str) -> ImportWizard:
        self._evict_expired()
        wizard = ImportWizard(upload_type, owner_id)
        self._wizards[wizard.id] = wizard
        return wizard

    def get(self, wizard_id: uuid.UUID, owner_id: str) -> ImportWizard:
        self._evict_expired()
        wizard = self._wizards.get(wizard_id)
        if wizard is None or wizard.owner_id != owner_id:
            raise WizardNotFound(str(wizard_id))
        return wizard

    def discard(self, wizard_id: uuid.UUID) -> None:
        self._wizards.pop(wizard_id, None)
