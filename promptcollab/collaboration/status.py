"""Read-only collaboration status for polling clients.

Polling is also when housekeeping happens: participants past the liveness
window and locks past their TTL are marked inactive here. There is no
background sweep. The two eviction batches commit separately.
"""

from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.collaboration.locks import LockManager
from promptcollab.collaboration.presence import PresenceTracker
from promptcollab.collaboration.schemas import CollaborationStatus
from promptcollab.collaboration.sessions import SessionManager
from promptcollab.database import utcnow
from promptcollab.exceptions import InfrastructureError

logger = structlog.get_logger()


class StatusAggregator:
    """Combines session, live participants and live locks into one view."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.presence = PresenceTracker(db)
        self.locks = LockManager(db)
        self.sessions = SessionManager(db, presence=self.presence, locks=self.locks)
        self.logger = logger.bind(component="status_aggregator")

    async def get_status(self, document_id: UUID) -> CollaborationStatus:
        """Current collaborators and locked sections of the document."""
        try:
            session = await self.sessions.find_active(document_id)
            if session is None:
                return CollaborationStatus(
                    session_id=None,
                    is_active=False,
                    collaborators=[],
                    locked_sections=[],
                )

            now = utcnow()
            collaborators = await self.presence.live_collaborators(session.id, now)
            locked_sections = await self.locks.live_locks(session.id, now)
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to build collaboration status",
                              document_id=str(document_id),
                              error=str(e))
            raise InfrastructureError("Collaboration status unavailable")

        return CollaborationStatus(
            session_id=session.id,
            is_active=True,
            collaborators=collaborators,
            locked_sections=locked_sections,
        )
