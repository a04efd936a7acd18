"""Bulk import wizard endpoints for students, staff, and self-identified internships."""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status

from app.core.config import settings
from app.core.deps import get_platform, get_wizard_registry, require_role
from app.core.limiter import limiter
from app.core.session import SessionContext
from app.schemas.imports import ConfirmImportRequest, UploadType, WizardOut
from app.services.bulk_submit import download_template, template_filename
from app.services.platform import PlatformClient
from app.services.spreadsheet import XLSX_CONTENT_TYPE
from app.services.wizard import ImportWizard, WizardNotFound, WizardRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

BULK_ROLES = ("PRINCIPAL", "SYSTEM_ADMIN", "STATE_DIRECTORATE")

Session = Annotated[SessionContext, Depends(require_role(*BULK_ROLES))]
Registry = Annotated[WizardRegistry, Depends(get_wizard_registry)]
Platform = Annotated[PlatformClient, Depends(get_platform)]


def _get_wizard(registry: WizardRegistry, wizard_id: uuid.UUID, session: SessionContext) -> ImportWizard:
    try:
        return registry.get(wizard_id, session.user.id)
    except WizardNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import wizard not found")


# ─── Wizard lifecycle ───

@router.post(
    "/{upload_type}/wizards",
    response_model=WizardOut,
    status_code=status.HTTP_201_CREATED,
    summary="Open a bulk import wizard",
)
async def open_wizard(upload_type: UploadType, session: Session, registry: Registry):
    wizard = registry.create(upload_type, session.user.id)
    logger.info("Opened %s import wizard %s for %s", upload_type.value, wizard.id, session.user.id)
    return wizard.to_out()


@router.get("/wizards/{wizard_id}", response_model=WizardOut, summary="Current wizard state")
async def get_wizard(wizard_id: uuid.UUID, session: Session, registry: Registry):
    return _get_wizard(registry, wizard_id, session).to_out()


@router.post(
    "/wizards/{wizard_id}/file",
    response_model=WizardOut,
    summary="Upload a spreadsheet and validate it (UPLOAD → VALIDATE)",
)
@limiter.limit(settings.UPLOAD_RATE_LIMIT)
async def load_file(
    request: Request,
    wizard_id: uuid.UUID,
    session: Session,
    registry: Registry,
    file: UploadFile = File(...),
):
    wizard = _get_wizard(registry, wizard_id, session)
    content = await file.read()
    wizard.load_file(
        file.filename or "upload.xlsx",
        content,
        max_rows=settings.BULK_MAX_ROWS,
        max_bytes=settings.bulk_max_file_bytes,
    )
    return wizard.to_out()


@router.post(
    "/wizards/{wizard_id}/confirm",
    response_model=WizardOut,
    summary="Submit the original file to the platform (VALIDATE → COMPLETE)",
)
async def confirm_import(
    wizard_id: uuid.UUID,
    body: ConfirmImportRequest,
    session: Session,
    registry: Registry,
    client: Platform,
):
    wizard = _get_wizard(registry, wizard_id, session)
    await wizard.submit(
        client,
        session,
        background=body.background,
        institution_id=body.institution_id,
    )
    return wizard.to_out()


@router.post("/wizards/{wizard_id}/cancel", response_model=WizardOut, summary="Discard the file (VALIDATE → UPLOAD)")
async def cancel_import(wizard_id: uuid.UUID, session: Session, registry: Registry):
    wizard = _get_wizard(registry, wizard_id, session)
    wizard.cancel()
    return wizard.to_out()


@router.post("/wizards/{wizard_id}/reset", response_model=WizardOut, summary="Upload another file (COMPLETE → UPLOAD)")
async def reset_import(wizard_id: uuid.UUID, session: Session, registry: Registry):
    wizard = _get_wizard(registry, wizard_id, session)
    wizard.reset()
    return wizard.to_out()


@router.delete("/wizards/{wizard_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Close a wizard")
async def close_wizard(wizard_id: uuid.UUID, session: Session, registry: Registry):
    wizard = _get_wizard(registry, wizard_id, session)
    registry.discard(wizard.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Templates ───

@router.get("/templates/{upload_type}", summary="Download the Excel template for an upload type")
async def get_template(upload_type: UploadType, session: Session, client: Platform):
    content = await download_template(client, session.access_token, upload_type)
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{template_filename(upload_type)}"'},
    )
