"""Tests for submitting import files to the platform and the platform client."""
import httpx
import pytest

from app.schemas.imports import QueuedUpload, UploadResult, UploadType
from app.services.bulk_submit import (
    download_template,
    outcome_notice,
    submit_import,
    upload_endpoint,
)
from app.services.platform import PlatformAPIError, PlatformClient


# ─── Helpers ──────────────────────────────────────────────────────────────────

SYNC_RESULT = {
    "total": 3,
    "success": 2,
    "failed": 1,
    "successRecords": [{"row": 2}, {"row": 3}],
    "failedRecords": [{"row": 4, "error": "Student not found"}],
}


def make_client(handler) -> PlatformClient:
    http = httpx.AsyncClient(base_url="http://platform.test/api", transport=httpx.MockTransport(handler))
    return PlatformClient(http)


class Recorder:
    """MockTransport handler that remembers every request it saw."""

    def __init__(self, status_code: int = 200, json: dict | None = None, content: bytes | None = None):
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.json = json
        self.content = content

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.json)


# ─── Endpoint selection ───────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "upload_type, background, expected",
    [
        (UploadType.STUDENTS, False, "/bulk/students/upload"),
        (UploadType.STAFF, False, "/bulk/users/upload"),
        (UploadType.SELF_INTERNSHIPS, False, "/bulk/self-internships/upload"),
        (UploadType.SELF_INTERNSHIPS, True, "/bulk/self-internships/upload-async"),
    ],
)
def test_upload_endpoint(upload_type, background, expected):
    assert upload_endpoint(upload_type, background) == expected


# ─── Submission ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sync_submit_posts_original_file():
    recorder = Recorder(json=SYNC_RESULT)
    client = make_client(recorder)

    outcome = await submit_import(
        client,
        "tok-123",
        UploadType.SELF_INTERNSHIPS,
        filename="internships.xlsx",
        content=b"PK-original-bytes",
    )

    assert isinstance(outcome, UploadResult)
    assert outcome.success == 2
    assert outcome.failed_records[0]["error"] == "Student not found"

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/bulk/self-internships/upload"
    assert request.headers["Authorization"] == "Bearer tok-123"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b"PK-original-bytes" in request.content
    assert b'filename="internships.xlsx"' in request.content
    assert b'name="institutionId"' not in request.content


@pytest.mark.asyncio
async def test_institution_id_is_sent_as_form_field():
    recorder = Recorder(json=SYNC_RESULT)

    await submit_import(
        make_client(recorder),
        "tok",
        UploadType.STUDENTS,
        filename="students.csv",
        content=b"Name,Email\n",
        institution_id="inst-42",
    )

    body = recorder.requests[0].content
    assert b'name="institutionId"' in body
    assert b"inst-42" in body
    assert b"text/csv" in body


@pytest.mark.asyncio
async def test_background_submit_returns_job():
    recorder = Recorder(json={"jobId": "job-9", "message": "queued"})

    outcome = await submit_import(
        make_client(recorder),
        "tok",
        UploadType.SELF_INTERNSHIPS,
        filename="internships.xlsx",
        content=b"bytes",
        background=True,
    )

    assert isinstance(outcome, QueuedUpload)
    assert outcome.job_id == "job-9"
    assert recorder.requests[0].url.path.endswith("/upload-async")


@pytest.mark.asyncio
async def test_progress_callback_reaches_total():
    recorder = Recorder(json=SYNC_RESULT)
    calls: list[tuple[int, int]] = []

    await submit_import(
        make_client(recorder),
        "tok",
        UploadType.STAFF,
        filename="staff.xlsx",
        content=b"x" * 200_000,
        on_progress=lambda sent, total: calls.append((sent, total)),
    )

    assert len(calls) > 1
    sent, total = calls[-1]
    assert sent == total
    assert all(a[0] < b[0] for a, b in zip(calls, calls[1:]))


@pytest.mark.asyncio
async def test_server_message_is_surfaced():
    recorder = Recorder(status_code=400, json={"message": "Institution ID not found for the user"})

    with pytest.raises(PlatformAPIError) as exc_info:
        await submit_import(
            make_client(recorder), "tok", UploadType.STUDENTS, filename="s.xlsx", content=b"x",
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Institution ID not found for the user"


@pytest.mark.asyncio
async def test_validation_message_list_is_joined():
    recorder = Recorder(status_code=400, json={"message": ["email must be an email", "name should not be empty"]})

    with pytest.raises(PlatformAPIError) as exc_info:
        await submit_import(make_client(recorder), "tok", UploadType.STAFF, filename="s.xlsx", content=b"x")

    assert exc_info.value.message == "email must be an email; name should not be empty"


@pytest.mark.asyncio
async def test_generic_fallback_without_server_message():
    recorder = Recorder(status_code=500, content=b"<html>oops</html>")

    with pytest.raises(PlatformAPIError) as exc_info:
        await submit_import(make_client(recorder), "tok", UploadType.STAFF, filename="s.xlsx", content=b"x")

    assert exc_info.value.message == "Failed to upload data"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "recorder",
    [
        Recorder(content=b"<html>OK</html>"),
        Recorder(json={"total": "many", "success": 1}),
    ],
    ids=["non-json-body", "wrong-result-shape"],
)
async def test_malformed_success_response_is_a_failed_upload(recorder):
    with pytest.raises(PlatformAPIError) as exc_info:
        await submit_import(make_client(recorder), "tok", UploadType.STAFF, filename="s.xlsx", content=b"x")

    assert exc_info.value.message == "Failed to upload data"
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_numeric_job_id_is_accepted():
    recorder = Recorder(json={"jobId": 314})

    outcome = await submit_import(
        make_client(recorder), "tok", UploadType.STUDENTS, filename="s.xlsx", content=b"x", background=True
    )

    assert outcome.job_id == "314"


@pytest.mark.asyncio
async def test_transport_error_becomes_platform_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PlatformAPIError) as exc_info:
        await submit_import(make_client(handler), "tok", UploadType.STAFF, filename="s.xlsx", content=b"x")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_template_download_uses_platform_type_names():
    recorder = Recorder(content=b"PK\x03\x04template")

    content = await download_template(make_client(recorder), "tok", UploadType.STAFF)

    assert content == b"PK\x03\x04template"
    assert recorder.requests[0].url.path == "/api/bulk/templates/users"


# ─── Outcome notices ──────────────────────────────────────────────────────────

def test_outcome_notice_levels():
    all_failed = UploadResult(total=2, success=0, failed=2)
    mixed = UploadResult(total=3, success=2, failed=1)
    clean = UploadResult(total=2, success=2, failed=0)

    assert outcome_notice(UploadType.STUDENTS, all_failed).level == "error"
    assert outcome_notice(UploadType.SELF_INTERNSHIPS, mixed).message == "Uploaded 2 internships, 1 failed"
    assert outcome_notice(UploadType.STAFF, clean).message == "Successfully uploaded all 2 staff"
    assert outcome_notice(UploadType.STAFF, QueuedUpload(job_id="j")).level == "success"
