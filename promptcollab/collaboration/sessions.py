"""Session lifecycle: one active collaborative session per document."""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.collaboration.locks import LockManager
from promptcollab.collaboration.models import CollaborativeSession
from promptcollab.collaboration.presence import PresenceTracker
from promptcollab.collaboration.schemas import CursorPosition, JoinResult, LockedSection, SessionInfo
from promptcollab.database import as_utc, utcnow
from promptcollab.documents.store import DocumentStore
from promptcollab.exceptions import InfrastructureError, NotFoundError

logger = structlog.get_logger()


class SessionManager:
    """Finds or creates the active session of a document and tracks who is in it."""

    def __init__(
        self,
        db: AsyncSession,
        presence: Optional[PresenceTracker] = None,
        locks: Optional[LockManager] = None,
    ):
        self.db = db
        self.documents = DocumentStore(db)
        self.presence = presence or PresenceTracker(db)
        self.locks = locks or LockManager(db)
        self.logger = logger.bind(component="session_manager")

    async def find_active(self, document_id: UUID) -> Optional[CollaborativeSession]:
        """Return the document's active session, if any."""
        result = await self.db.execute(
            select(CollaborativeSession).where(
                and_(
                    CollaborativeSession.document_id == document_id,
                    CollaborativeSession.is_active.is_(True),
                )
            )
        )
        return result.scalars().first()

    async def get_or_create(self, document_id: UUID, actor_id: UUID, now: Optional[datetime] = None) -> CollaborativeSession:
        """Reuse the active session or open a new one owned by the actor."""
        session = await self.find_active(document_id)
        if session is not None:
            return session

        now = now or utcnow()
        session = CollaborativeSession(
            document_id=document_id,
            created_by=actor_id,
            created_at=now,
            last_activity=now,
            is_active=True,
        )
        self.db.add(session)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent join opened the session first
            await self.db.rollback()
            session = await self.find_active(document_id)
            if session is None:
                raise
            return session

        self.logger.info("Created collaborative session",
                         session_id=str(session.id),
                         document_id=str(document_id),
                         created_by=str(actor_id))
        return session

    async def join(self, document_id: UUID, actor_id: UUID) -> JoinResult:
        """Attach the actor to the document's session and list who is there."""
        await self.documents.get_document(document_id)

        try:
            now = utcnow()
            session = await self.get_or_create(document_id, actor_id, now)
            await self.presence.upsert(session.id, actor_id, now)

            session.last_activity = now
            await self.db.commit()

            rows = await self.presence.active_rows(session.id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to join collaborative session",
                              document_id=str(document_id),
                              user_id=str(actor_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to join session: {str(e)}")

        collaborators = [self.presence.to_collaborator(row) for row in rows]

        self.logger.info("User joined collaborative session",
                         session_id=str(session.id),
                         user_id=str(actor_id),
                         participants=len(collaborators))

        return JoinResult(
            session=SessionInfo(
                id=session.id,
                prompt_id=session.document_id,
                created_at=as_utc(session.created_at),
                last_activity=as_utc(session.last_activity),
                participants=[c.id for c in collaborators],
            ),
            collaborators=collaborators,
        )

    async def leave(self, document_id: UUID, actor_id: UUID) -> bool:
        """Detach the actor and drop their locks. The session stays open."""
        try:
            session = await self.find_active(document_id)
            if session is None:
                return False

            left = await self.presence.leave(session.id, actor_id)
            # An evicted participant may still hold locks
            released = await self.locks.release_all(session.id, actor_id)
            if left or released:
                self.logger.info("User left collaborative session",
                                 session_id=str(session.id),
                                 user_id=str(actor_id),
                                 released_locks=released)
            return left
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to leave collaborative session",
                              document_id=str(document_id),
                              user_id=str(actor_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to leave session: {str(e)}")

    async def heartbeat(self, document_id: UUID, actor_id: UUID, cursor: CursorPosition) -> bool:
        """Record the actor's cursor. False when they are not an active participant."""
        try:
            session = await self.find_active(document_id)
            if session is None:
                return False

            now = utcnow()
            updated = await self.presence.update_cursor(session.id, actor_id, cursor, now)
            if updated:
                session.last_activity = now
                await self.db.commit()
            return updated
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to record cursor",
                              document_id=str(document_id),
                              user_id=str(actor_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to record cursor: {str(e)}")

    async def lock_section(self, document_id: UUID, actor_id: UUID, start: int, end: int) -> LockedSection:
        """Advertise an advisory lock in the document's active session."""
        try:
            session = await self.find_active(document_id)
            if session is None:
                raise NotFoundError(f"No active collaborative session for document {document_id}")

            lock = await self.locks.acquire(session.id, actor_id, start, end)
            user = await self.presence.user_labels(actor_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to lock section",
                              document_id=str(document_id),
                              user_id=str(actor_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to lock section: {str(e)}")

        return self.locks.to_locked_section((lock, *user))

    async def unlock_section(self, document_id: UUID, actor_id: UUID, start: int, end: int) -> int:
        """Release the actor's locks over exactly [start, end)."""
        try:
            session = await self.find_active(document_id)
            if session is None:
                raise NotFoundError(f"No active collaborative session for document {document_id}")

            return await self.locks.release(session.id, actor_id, start, end)
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to unlock section",
                              document_id=str(document_id),
                              user_id=str(actor_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to unlock section: {str(e)}")
