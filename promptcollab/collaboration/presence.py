"""Presence tracking: heartbeat timestamps and lazy eviction of silent participants."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.auth.models import User, display_label
from promptcollab.collaboration.models import Participant
from promptcollab.collaboration.schemas import Collaborator, CursorPosition
from promptcollab.config import settings
from promptcollab.database import as_utc, utcnow

logger = structlog.get_logger()

ParticipantRow = Tuple[Participant, Optional[str], Optional[str]]


class PresenceTracker:
    """Tracks who is attached to a session and when they were last heard from."""

    def __init__(self, db: AsyncSession, liveness_minutes: Optional[int] = None):
        self.db = db
        self.liveness_window = timedelta(
            minutes=liveness_minutes or settings.participant_liveness_minutes
        )
        self.logger = logger.bind(component="presence_tracker")

    async def upsert(self, session_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> Participant:
        """Insert or refresh the (session, user) participant row.

        joined_at is only set on first insert; last_seen and is_active are
        always refreshed.
        """
        now = now or utcnow()
        participant = await self._get(session_id, user_id)

        if participant is None:
            participant = Participant(
                session_id=session_id,
                user_id=user_id,
                joined_at=now,
                last_seen=now,
                is_active=True,
            )
            self.db.add(participant)
            try:
                await self.db.commit()
                return participant
            except IntegrityError:
                # Another request inserted the same pair first
                await self.db.rollback()
                participant = await self._get(session_id, user_id)
                if participant is None:
                    raise

        participant.last_seen = now
        participant.is_active = True
        await self.db.commit()
        return participant

    async def active_rows(self, session_id: UUID) -> List[ParticipantRow]:
        """Active participants with their user's display name and email."""
        result = await self.db.execute(
            select(Participant, User.display_name, User.email)
            .outerjoin(User, User.id == Participant.user_id)
            .where(
                and_(
                    Participant.session_id == session_id,
                    Participant.is_active.is_(True),
                )
            )
            .order_by(Participant.joined_at.asc())
        )
        return [tuple(row) for row in result.all()]

    def partition(
        self, rows: Sequence[ParticipantRow], now: datetime
    ) -> Tuple[List[ParticipantRow], List[ParticipantRow]]:
        """Split rows into (live, stale) by the liveness window."""
        live, stale = [], []
        for row in rows:
            if now - as_utc(row[0].last_seen) <= self.liveness_window:
                live.append(row)
            else:
                stale.append(row)
        return live, stale

    async def evict(self, session_id: UUID, participant_ids: Sequence[int], now: datetime) -> int:
        """Mark the given participants inactive if they are still past the window.

        The condition is re-checked in the UPDATE, so racing callers and a
        participant that heartbeats in between are both handled.
        """
        if not participant_ids:
            return 0

        cutoff = now - self.liveness_window
        result = await self.db.execute(
            update(Participant)
            .where(
                and_(
                    Participant.session_id == session_id,
                    Participant.id.in_(list(participant_ids)),
                    Participant.is_active.is_(True),
                    Participant.last_seen < cutoff,
                )
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

        if result.rowcount:
            self.logger.info("Evicted stale participants",
                             session_id=str(session_id),
                             count=result.rowcount)
        return result.rowcount

    async def live_collaborators(self, session_id: UUID, now: Optional[datetime] = None) -> List[Collaborator]:
        """Live participants of the session; stale ones are evicted on the way."""
        now = now or utcnow()
        rows = await self.active_rows(session_id)
        live, stale = self.partition(rows, now)
        await self.evict(session_id, [row[0].id for row in stale], now)
        return [self.to_collaborator(row) for row in live]

    async def leave(self, session_id: UUID, user_id: UUID) -> bool:
        """Mark the participant inactive. Returns False if it was not active."""
        result = await self.db.execute(
            update(Participant)
            .where(
                and_(
                    Participant.session_id == session_id,
                    Participant.user_id == user_id,
                    Participant.is_active.is_(True),
                )
            )
            .values(is_active=False, last_seen=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount > 0

    async def update_cursor(
        self,
        session_id: UUID,
        user_id: UUID,
        cursor: CursorPosition,
        now: Optional[datetime] = None,
    ) -> bool:
        """Store the cursor and count it as a heartbeat."""
        now = now or utcnow()
        participant = await self._get(session_id, user_id)
        if participant is None or not participant.is_active:
            return False

        participant.cursor_position = cursor.model_dump(mode="json")
        participant.last_seen = now
        await self.db.commit()
        return True

    async def user_labels(self, user_id: UUID) -> Tuple[Optional[str], Optional[str]]:
        """(display_name, email) of a user, or (None, None) if unknown."""
        result = await self.db.execute(
            select(User.display_name, User.email).where(User.id == user_id)
        )
        row = result.one_or_none()
        return (row[0], row[1]) if row else (None, None)

    @staticmethod
    def to_collaborator(row: ParticipantRow) -> Collaborator:
        participant, display_name, email = row
        return Collaborator(
            id=participant.user_id,
            name=display_label(display_name, email),
            email=email or "",
            last_seen=as_utc(participant.last_seen),
            is_active=participant.is_active,
            cursor=_parse_cursor(participant.cursor_position),
        )

    async def _get(self, session_id: UUID, user_id: UUID) -> Optional[Participant]:
        result = await self.db.execute(
            select(Participant).where(
                and_(
                    Participant.session_id == session_id,
                    Participant.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()


def _parse_cursor(raw: Optional[Dict[str, Any]]) -> Optional[CursorPosition]:
    if not raw:
        return None
    return CursorPosition.model_validate(raw)
