"""Async client for the internship platform REST API."""
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 64 * 1024
GENERIC_ERROR = "Something went wrong. Please try again."

ProgressCallback = Callable[[int, int], None]


class PlatformAPIError(Exception):
    """A platform call failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def unwrap(payload: Any) -> Any:
    """Strip the ``{data: ...}`` envelope some endpoints use."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    message = body.get("message") or body.get("detail") or body.get("error")
    # class-validator failures come back as a list of strings
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)
    return str(message) if message else fallback


def _payload(response: httpx.Response, fallback: str) -> Any:
    """Decode a successful response; a body that is not JSON counts as a failure."""
    try:
        body = response.json()
    except ValueError as exc:
        logger.warning(
            "Platform %s %s returned a non-JSON body",
            response.request.method, response.request.url.path,
        )
        raise PlatformAPIError(fallback) from exc
    return unwrap(body)


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class PlatformClient:
    """Thin wrapper that turns every failure into :class:`PlatformAPIError`."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _send(self, request: httpx.Request, fallback: str) -> httpx.Response:
        try:
            response = await self._http.send(request)
        except httpx.HTTPError as exc:
            logger.warning("Platform %s %s failed: %s", request.method, request.url.path, exc)
            raise PlatformAPIError(str(exc) or fallback) from exc

        if response.is_error:
            message = _error_message(response, fallback)
            logger.info(
                "Platform %s %s -> %s: %s",
                request.method, request.url.path, response.status_code, message,
            )
            raise PlatformAPIError(message, status_code=response.status_code)
        return response

    async def get_json(
        self,
        path: str,
        token: str,
        params: dict | None = None,
        fallback: str = GENERIC_ERROR,
    ) -> Any:
        request = self._http.build_request("GET", path, params=params, headers=_auth_headers(token))
        response = await self._send(request, fallback)
        return _payload(response, fallback)

    async def get_bytes(self, path: str, token: str, fallback: str = GENERIC_ERROR) -> bytes:
        request = self._http.build_request("GET", path, headers=_auth_headers(token))
        response = await self._send(request, fallback)
        return response.content

    async def put_form(
        self,
        path: str,
        token: str,
        fields: dict[str, Any],
        fallback: str = GENERIC_ERROR,
    ) -> Any:
        # null fields are left out, as the console does when building its form
        data = {k: _form_value(v) for k, v in fields.items() if v is not None}
        request = self._http.build_request("PUT", path, data=data, headers=_auth_headers(token))
        response = await self._send(request, fallback)
        return _payload(response, fallback) if response.content else None

    async def delete(self, path: str, token: str, fallback: str = GENERIC_ERROR) -> Any:
        request = self._http.build_request("DELETE", path, headers=_auth_headers(token))
        response = await self._send(request, fallback)
        return _payload(response, fallback) if response.content else None

    async def post_file(
        self,
        path: str,
        token: str,
        *,
        filename: str,
        content: bytes,
        content_type: str,
        fields: dict[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        fallback: str = GENERIC_ERROR,
    ) -> Any:
        """POST ``content`` as the ``file`` part of a multipart form.

        ``on_progress(sent, total)`` is called after each chunk of the encoded
        body has been handed to the transport.
        """
        data = {k: _form_value(v) for k, v in (fields or {}).items() if v is not None}
        encoded = self._http.build_request(
            "POST",
            path,
            files={"file": (filename, content, content_type)},
            data=data,
        )
        body = encoded.read()
        total = len(body)

        headers = {
            **_auth_headers(token),
            "Content-Type": encoded.headers["Content-Type"],
            "Content-Length": str(total),
        }
        request = self._http.build_request(
            "POST", path, content=_chunked(body, on_progress), headers=headers
        )
        response = await self._send(request, fallback)
        logger.info("Uploaded %s (%d bytes) to %s", filename, total, path)
        return _payload(response, fallback)


async def _chunked(body: bytes, on_progress: ProgressCallback | None) -> AsyncIterator[bytes]:
    total = len(body)
    sent = 0
    for start in range(0, total, UPLOAD_CHUNK_SIZE):
        chunk = body[start:start + UPLOAD_CHUNK_SIZE]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            on_progress(sent, total)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ─── Client singleton ───

_client: PlatformClient | None = None
_http: httpx.AsyncClient | None = None


def get_platform_client() -> PlatformClient:
    global _client, _http
    if _client is None:
        _http = httpx.AsyncClient(
            base_url=settings.PLATFORM_API_URL,
            timeout=settings.PLATFORM_API_TIMEOUT_SECONDS,
        )
        _client = PlatformClient(_http)
    return _client


async def close_platform_client() -> None:
    global _client, _http
    if _http is not None:
        await _http.aclose()
    _client = None
    _http = None
