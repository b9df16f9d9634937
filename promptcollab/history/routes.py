"""Version history API routes."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.auth.dependencies import get_current_actor
from promptcollab.database_deps import get_db
from promptcollab.documents.models import Document
from promptcollab.documents.store import DocumentStore
from promptcollab.exceptions import PermissionDeniedError
from promptcollab.history.schemas import (
    RevertRequest,
    RevertResponse,
    VersionDetailResponse,
    VersionListResponse,
    VersionResponse,
)
from promptcollab.history.service import VersionStore

logger = structlog.get_logger()

router = APIRouter(prefix="/prompts", tags=["Version History"])


async def _readable_document(db: AsyncSession, document_id: UUID, actor_id: UUID) -> Document:
    """Load the document if the actor owns it or it is public."""
    document = await DocumentStore(db).get_document(document_id)
    if document.owner_id != actor_id and not document.is_public:
        raise PermissionDeniedError("You do not have access to this document's history")
    return document


@router.get("/{prompt_id}/versions", response_model=VersionListResponse)
async def list_versions(
    prompt_id: UUID,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """List the document's versions, newest first."""
    await _readable_document(db, prompt_id, actor_id)

    versions = await VersionStore(db).list_versions(prompt_id)
    data = [VersionResponse.from_version(v) for v in versions]
    return VersionListResponse(data=data, total=len(data))


@router.get("/{prompt_id}/versions/{version_id}", response_model=VersionDetailResponse)
async def get_version(
    prompt_id: UUID,
    version_id: UUID,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get a single version of the document."""
    await _readable_document(db, prompt_id, actor_id)

    version = await VersionStore(db).get_version(prompt_id, version_id)
    return VersionDetailResponse(data=VersionResponse.from_version(version))


@router.post("/{prompt_id}/revert", response_model=RevertResponse)
async def revert_document(
    prompt_id: UUID,
    request: RevertRequest,
    actor_id: UUID = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Revert the document to an earlier version. Owner only."""
    result = await VersionStore(db).revert(prompt_id, actor_id, request.version_id)

    logger.info("Document reverted via API",
                document_id=str(prompt_id),
                user_id=str(actor_id),
                new_version=result.new_version)

    return RevertResponse(
        message=f"Reverted to version {result.reverted_from_version}",
        data=result,
    )
