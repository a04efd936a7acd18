"""Tests for the institution dashboard fan-out."""
import asyncio

import httpx
import pytest

from app.core.session import InstitutionScopeError, SessionContext, SessionUser
from app.services.dashboard import fetch_institution_overview
from app.services.platform import PlatformAPIError, PlatformClient


def make_session(role: str = "PRINCIPAL", institution_id: str | None = "inst-1") -> SessionContext:
    return SessionContext(
        user=SessionUser(id="user-1", role=role, institution_id=institution_id),
        access_token="tok",
    )


PAYLOADS = {
    "/api/principal/analytics": {"data": {"totalStudents": 120}},
    "/api/principal/internships/stats": {"data": {"active": 40}},
    "/api/principal/placements/stats": {"placed": 12},
}


@pytest.mark.asyncio
async def test_overview_combines_three_reads():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=PAYLOADS[request.url.path])

    http = httpx.AsyncClient(base_url="http://platform.test/api", transport=httpx.MockTransport(handler))
    overview = await fetch_institution_overview(PlatformClient(http), make_session())

    assert overview == {
        "totalStudents": 120,
        "internshipStats": {"active": 40},
        "placementStats": {"placed": 12},
    }
    assert {r.url.params["institutionId"] for r in seen} == {"inst-1"}


@pytest.mark.asyncio
async def test_reads_are_issued_concurrently():
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, json=PAYLOADS[request.url.path])

    http = httpx.AsyncClient(base_url="http://platform.test/api", transport=httpx.MockTransport(handler))
    await fetch_institution_overview(PlatformClient(http), make_session())

    assert peak == 3


@pytest.mark.asyncio
async def test_state_directorate_chooses_institution():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["institutionId"] == "inst-5"
        return httpx.Response(200, json=PAYLOADS[request.url.path])

    http = httpx.AsyncClient(base_url="http://platform.test/api", transport=httpx.MockTransport(handler))
    client = PlatformClient(http)
    session = make_session(role="STATE_DIRECTORATE", institution_id=None)

    await fetch_institution_overview(client, session, "inst-5")
    with pytest.raises(InstitutionScopeError):
        await fetch_institution_overview(client, session)


@pytest.mark.asyncio
async def test_any_failed_read_fails_the_overview():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("placements/stats"):
            return httpx.Response(503, json={})
        return httpx.Response(200, json=PAYLOADS[request.url.path])

    http = httpx.AsyncClient(base_url="http://platform.test/api", transport=httpx.MockTransport(handler))

    with pytest.raises(PlatformAPIError) as exc_info:
        await fetch_institution_overview(PlatformClient(http), make_session())
    assert exc_info.value.message == "Failed to load analytics data"
