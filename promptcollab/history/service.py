"""Version store: numbered snapshots of a document, with diff summaries and revert.

Version numbers are allocated as one more than the current maximum for the
document. Two concurrent saves can read the same maximum; the unique
(document_id, version_number) constraint rejects the loser, which re-reads
the maximum and tries again a bounded number of times.
"""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import and_, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.auth.models import User, display_label
from promptcollab.config import settings
from promptcollab.database import utcnow
from promptcollab.documents.store import DocumentStore
from promptcollab.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from promptcollab.history.diff import calculate_changes
from promptcollab.history.models import DocumentVersion
from promptcollab.history.schemas import DocumentResponse, RevertResult

logger = structlog.get_logger()

# PostgreSQL reports the constraint name, SQLite the constrained columns
VERSION_NUMBER_CONFLICT_MARKERS = (
    "uq_prompt_versions_document_number",
    "prompt_versions.version_number",
)


def is_version_number_conflict(error: IntegrityError) -> bool:
    """Whether the error is the unique (document, number) violation."""
    message = str(error.orig) if error.orig is not None else str(error)
    return any(marker in message for marker in VERSION_NUMBER_CONFLICT_MARKERS)


class VersionStore:
    """Creates, lists and restores document versions."""

    def __init__(
        self,
        db: AsyncSession,
        diff_strategy: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.documents = DocumentStore(db)
        self.diff_strategy = diff_strategy or settings.diff_strategy
        self.max_attempts = max_attempts or settings.version_allocation_retries
        self.logger = logger.bind(component="version_store")

    async def save_version(
        self,
        document_id: UUID,
        actor_id: UUID,
        content: str,
        message: Optional[str] = None,
    ) -> DocumentVersion:
        """Snapshot new content as the next version and make it current."""
        if not content:
            raise ValidationError("Content is required")

        document = await self.documents.get_document(document_id)
        author_name = await self._author_name(actor_id)

        snapshot = document.versioned_snapshot()
        snapshot["content"] = content

        version = await self._append(document_id, actor_id, author_name, snapshot, message)

        await self.documents.update_document(document_id, {
            "content": content,
            "version": version.version_number,
            "updated_at": utcnow(),
        })

        self.logger.info("Version saved",
                         document_id=str(document_id),
                         version_number=version.version_number,
                         author_id=str(actor_id))
        return version

    async def list_versions(self, document_id: UUID) -> List[DocumentVersion]:
        """All versions of the document, newest first."""
        try:
            result = await self.db.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(desc(DocumentVersion.version_number), desc(DocumentVersion.created_at))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error("Failed to list versions",
                              document_id=str(document_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to list versions: {str(e)}")

    async def get_version(self, document_id: UUID, version_id: UUID) -> DocumentVersion:
        """A version that belongs to the document, or NotFoundError."""
        try:
            result = await self.db.execute(
                select(DocumentVersion).where(
                    and_(
                        DocumentVersion.id == version_id,
                        DocumentVersion.document_id == document_id,
                    )
                )
            )
            version = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error("Failed to load version",
                              document_id=str(document_id),
                              version_id=str(version_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to load version: {str(e)}")

        if version is None:
            raise NotFoundError(f"Version {version_id} not found")
        return version

    async def revert(self, document_id: UUID, actor_id: UUID, target_version_id: UUID) -> RevertResult:
        """Restore the versioned fields of an earlier version.

        The current state is first saved as a backup version, so a revert
        can itself be reverted. The backup and the document update are
        committed separately; a failure in between leaves the backup in
        place and the document unchanged.
        """
        document = await self.documents.get_document(document_id)
        if document.owner_id != actor_id:
            raise PermissionDeniedError("Only the owner can revert this document")

        target = await self.get_version(document_id, target_version_id)
        target_number = target.version_number
        patch: Dict[str, Any] = {
            "content": target.content,
            "description": target.description,
            "tags": list(target.tags or []),
            "category": target.category,
            "category_id": target.category_id,
            "parameters": dict(target.parameters or {}),
        }

        self.logger.info("Reverting document",
                         document_id=str(document_id),
                         target_version=target_number)

        author_name = await self._author_name(actor_id)
        backup = await self._append(
            document_id,
            actor_id,
            author_name,
            document.versioned_snapshot(),
            f"Backup before reverting to version {target_number}",
        )

        new_version = backup.version_number + 1
        patch.update(version=new_version, updated_at=utcnow())
        document = await self.documents.update_document(document_id, patch)

        self.logger.info("Document reverted",
                         document_id=str(document_id),
                         backup_version=backup.version_number,
                         new_version=new_version,
                         reverted_from=target_number)

        return RevertResult(
            document=DocumentResponse.model_validate(document),
            previous_version=backup.version_number,
            new_version=new_version,
            reverted_from_version=target_number,
        )

    async def _append(
        self,
        document_id: UUID,
        author_id: UUID,
        author_name: str,
        snapshot: Dict[str, Any],
        message: Optional[str],
    ) -> DocumentVersion:
        """Insert the snapshot under the next free version number."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                number, previous_content = await self._next_number(document_id)
                summary = calculate_changes(previous_content, snapshot["content"], self.diff_strategy)

                version = DocumentVersion(
                    document_id=document_id,
                    version_number=number,
                    content=snapshot["content"],
                    description=snapshot.get("description"),
                    tags=list(snapshot.get("tags") or []),
                    category=snapshot.get("category"),
                    category_id=snapshot.get("category_id"),
                    parameters=dict(snapshot.get("parameters") or {}),
                    author_id=author_id,
                    author_name=author_name,
                    message=message or f"Version {number}",
                    changes_summary=summary.model_dump(),
                    created_at=utcnow(),
                )
                self.db.add(version)
                await self.db.commit()
                return version

            except IntegrityError as e:
                await self.db.rollback()
                if not is_version_number_conflict(e):
                    self.logger.error("Version rejected by the store",
                                      document_id=str(document_id),
                                      error=str(e))
                    raise InfrastructureError(f"Failed to save version: {str(e)}")
                self.logger.warning("Version number taken, retrying",
                                    document_id=str(document_id),
                                    attempt=attempt)
            except SQLAlchemyError as e:
                await self.db.rollback()
                self.logger.error("Failed to save version",
                                  document_id=str(document_id),
                                  error=str(e))
                raise InfrastructureError(f"Failed to save version: {str(e)}")

        raise ConflictError(
            f"Could not allocate a version number for document {document_id} "
            f"after {self.max_attempts} attempts"
        )

    async def _next_number(self, document_id: UUID) -> Tuple[int, str]:
        """Next version number and the content of its predecessor."""
        result = await self.db.execute(
            select(func.max(DocumentVersion.version_number))
            .where(DocumentVersion.document_id == document_id)
        )
        current = result.scalar() or 0

        previous_content = ""
        if current:
            result = await self.db.execute(
                select(DocumentVersion.content).where(
                    and_(
                        DocumentVersion.document_id == document_id,
                        DocumentVersion.version_number == current,
                    )
                )
            )
            previous_content = result.scalar() or ""

        return current + 1, previous_content

    async def _author_name(self, actor_id: UUID) -> str:
        try:
            result = await self.db.execute(
                select(User.display_name, User.email).where(User.id == actor_id)
            )
            row = result.one_or_none()
        except SQLAlchemyError as e:
            self.logger.error("Failed to load author", user_id=str(actor_id), error=str(e))
            raise InfrastructureError(f"Failed to load author: {str(e)}")

        if row is None:
            return display_label(None, None)
        return display_label(row[0], row[1])
