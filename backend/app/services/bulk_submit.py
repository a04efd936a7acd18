"""Submitting a validated spreadsheet to the platform import endpoints.

The original file goes to the platform unchanged, never the parsed rows, so
the platform applies its own parsing and validation.
"""
import logging

from pydantic import ValidationError

from app.schemas.imports import Notice, QueuedUpload, UploadResult, UploadType
from app.services.platform import PlatformAPIError, PlatformClient, ProgressCallback
from app.services.spreadsheet import content_type_for

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "Failed to upload data"

# (sync endpoint, background endpoint)
UPLOAD_ENDPOINTS: dict[UploadType, tuple[str, str]] = {
    UploadType.STUDENTS: ("/bulk/students/upload", "/bulk/students/upload-async"),
    UploadType.STAFF: ("/bulk/users/upload", "/bulk/users/upload-async"),
    UploadType.SELF_INTERNSHIPS: (
        "/bulk/self-internships/upload",
        "/bulk/self-internships/upload-async",
    ),
}

TEMPLATE_NAMES: dict[UploadType, str] = {
    UploadType.STUDENTS: "students",
    UploadType.STAFF: "users",
    UploadType.SELF_INTERNSHIPS: "self-internships",
}


def upload_endpoint(upload_type: UploadType, background: bool) -> str:
    sync_path, background_path = UPLOAD_ENDPOINTS[upload_type]
    return background_path if background else sync_path


async def submit_import(
    client: PlatformClient,
    token: str,
    upload_type: UploadType,
    *,
    filename: str,
    content: bytes,
    background: bool = False,
    institution_id: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> UploadResult | QueuedUpload:
    """POST the file and return the platform's verdict.

    Raises PlatformAPIError on transport or server failure. Rows rejected by
    the platform are not an error; they come back in ``failed_records``.
    """
    path = upload_endpoint(upload_type, background)
    payload = await client.post_file(
        path,
        token,
        filename=filename,
        content=content,
        content_type=content_type_for(filename),
        fields={"institutionId": institution_id, "async": background or None},
        on_progress=on_progress,
        fallback=UPLOAD_FAILED,
    )

    try:
        if background and isinstance(payload, dict) and payload.get("jobId"):
            queued = QueuedUpload.model_validate(payload)
            logger.info("Queued %s import %s as job %s", upload_type.value, filename, queued.job_id)
            return queued
        result = UploadResult.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Unexpected %s upload response from %s: %s", upload_type.value, path, exc)
        raise PlatformAPIError(UPLOAD_FAILED) from exc

    logger.info(
        "Imported %s from %s: %d/%d succeeded",
        upload_type.value, filename, result.success, result.total,
    )
    return result


def outcome_notice(upload_type: UploadType, outcome: UploadResult | QueuedUpload) -> Notice:
    if isinstance(outcome, QueuedUpload):
        return Notice(
            level="success",
            message="Upload queued successfully! You can track progress in Job History.",
        )
    label = upload_type.label
    if outcome.success == 0 and outcome.failed > 0:
        return Notice(level="error", message=f"All {outcome.failed} records failed validation")
    if outcome.failed > 0:
        return Notice(
            level="warning",
            message=f"Uploaded {outcome.success} {label}, {outcome.failed} failed",
        )
    return Notice(level="success", message=f"Successfully uploaded all {outcome.success} {label}")


async def download_template(client: PlatformClient, token: str, upload_type: UploadType) -> bytes:
    return await client.get_bytes(
        f"/bulk/templates/{TEMPLATE_NAMES[upload_type]}",
        token,
        fallback="Failed to download template",
    )


def template_filename(upload_type: UploadType) -> str:
    return f"bulk-{upload_type.value}-upload-template.xlsx"
