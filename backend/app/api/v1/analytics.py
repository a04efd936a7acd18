"""Institution dashboard endpoint."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.deps import get_platform, require_role
from app.core.session import SessionContext
from app.services.dashboard import fetch_institution_overview
from app.services.platform import PlatformClient

router = APIRouter()


@router.get("/overview", summary="Institution analytics with internship and placement stats")
async def overview(
    session: Annotated[SessionContext, Depends(require_role("PRINCIPAL", "SYSTEM_ADMIN", "STATE_DIRECTORATE"))],
    client: Annotated[PlatformClient, Depends(get_platform)],
    institution_id: str | None = Query(default=None, alias="institutionId"),
):
    return await fetch_institution_overview(client, session, institution_id)
