"""Collaborative editing API routes."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.auth.dependencies import get_current_actor
from promptcollab.collaboration.schemas import (
    CursorPosition,
    CursorResponse,
    CursorUpdate,
    JoinRequest,
    JoinResponse,
    LeaveResponse,
    LockRequest,
    LockResponse,
    ReleaseResponse,
    StatusResponse,
)
from promptcollab.collaboration.sessions import SessionManager
from promptcollab.collaboration.status import StatusAggregator
from promptcollab.database import as_utc
from promptcollab.database_deps import get_db
from promptcollab.exceptions import NotFoundError
from promptcollab.history.diff import ChangeSummary
from promptcollab.history.schemas import SaveVersionRequest, SaveVersionResponse, SavedVersion
from promptcollab.history.service import VersionStore

logger = structlog.get_logger()

router = APIRouter(prefix="/collaborative", tags=["Collaboration"])


@router.post("/join", response_model=JoinResponse)
async def join_session(
    request: JoinRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Join the document's collaborative session, opening one if needed."""
    result = await SessionManager(db).join(request.prompt_id, actor_id)
    return JoinResponse(session=result.session, collaborators=result.collaborators)


@router.get("/status", response_model=StatusResponse)
async def get_status(
    prompt_id: UUID = Query(..., alias="promptId"),
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Live collaborators and locked sections of the document."""
    status = await StatusAggregator(db).get_status(prompt_id)
    return StatusResponse(status=status)


@router.post("/version", response_model=SaveVersionResponse)
async def save_version(
    request: SaveVersionRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Save the document's content as a new version."""
    version = await VersionStore(db).save_version(
        request.prompt_id, actor_id, request.content, request.message
    )
    return SaveVersionResponse(
        version=SavedVersion(
            id=version.id,
            content=version.content,
            timestamp=as_utc(version.created_at),
            author=version.author_name,
            message=version.message,
            version_number=version.version_number,
            changes_summary=ChangeSummary.model_validate(version.changes_summary or {}),
        )
    )


@router.post("/lock", response_model=LockResponse)
async def lock_section(
    request: LockRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Advertise an advisory lock over a range of the document."""
    lock = await SessionManager(db).lock_section(
        request.prompt_id, actor_id, request.start_pos, request.end_pos
    )
    return LockResponse(lock=lock)


@router.post("/unlock", response_model=ReleaseResponse)
async def unlock_section(
    request: LockRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Release the caller's locks over exactly the given range."""
    released = await SessionManager(db).unlock_section(
        request.prompt_id, actor_id, request.start_pos, request.end_pos
    )
    return ReleaseResponse(released=released)


@router.post("/leave", response_model=LeaveResponse)
async def leave_session(
    request: JoinRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Leave the document's session and drop the caller's locks."""
    left = await SessionManager(db).leave(request.prompt_id, actor_id)
    return LeaveResponse(left=left)


@router.post("/cursor", response_model=CursorResponse)
async def update_cursor(
    request: CursorUpdate,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Report the caller's cursor; doubles as a presence heartbeat."""
    cursor = CursorPosition(position=request.position, selection=request.selection)
    updated = await SessionManager(db).heartbeat(request.prompt_id, actor_id, cursor)
    if not updated:
        raise NotFoundError("Not an active participant of this document's session")
    return CursorResponse(updated=True)
