"""Student list endpoints backed by the optimistic student cache."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.deps import get_platform, get_student_directory, require_role
from app.core.session import SessionContext
from app.schemas.students import StudentListResponse, ToggleActiveRequest
from app.services.platform import PlatformClient
from app.services.student_directory import StudentDirectory

router = APIRouter()

Session = Annotated[SessionContext, Depends(require_role("PRINCIPAL", "SYSTEM_ADMIN"))]
Directory = Annotated[StudentDirectory, Depends(get_student_directory)]
Platform = Annotated[PlatformClient, Depends(get_platform)]


@router.get("", response_model=StudentListResponse, summary="List students (cached)")
async def list_students(
    session: Session,
    directory: Directory,
    client: Platform,
    refresh: bool = Query(default=False),
):
    items = await directory.list_students(client, session, refresh=refresh)
    return StudentListResponse(items=items, total=len(items))


@router.post(
    "/{student_id}/toggle-active",
    response_model=StudentListResponse,
    summary="Activate or deactivate a student",
)
async def toggle_active(
    student_id: str,
    body: ToggleActiveRequest,
    session: Session,
    directory: Directory,
    client: Platform,
):
    items = await directory.set_active(client, session, student_id, body.is_active)
    return StudentListResponse(items=items, total=len(items))


@router.delete("/{student_id}", response_model=StudentListResponse, summary="Deactivate and remove a student")
async def remove_student(student_id: str, session: Session, directory: Directory, client: Platform):
    items = await directory.deactivate(client, session, student_id)
    return StudentListResponse(items=items, total=len(items))
