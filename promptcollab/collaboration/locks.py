"""Advisory section locks.

Locks are annotations for the editing UI. They are never checked before a
write, overlapping ranges are accepted, and they end either by explicit
release or by silently expiring after the TTL.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.auth.models import User, display_label
from promptcollab.collaboration.models import SectionLock
from promptcollab.collaboration.schemas import LockedSection
from promptcollab.config import settings
from promptcollab.database import as_utc, utcnow
from promptcollab.exceptions import ValidationError

logger = structlog.get_logger()

LockRow = Tuple[SectionLock, Optional[str], Optional[str]]


class LockManager:
    """Manages advisory range locks within a session."""

    def __init__(self, db: AsyncSession, ttl_minutes: Optional[int] = None):
        self.db = db
        self.ttl = timedelta(minutes=ttl_minutes or settings.lock_ttl_minutes)
        self.logger = logger.bind(component="lock_manager")

    async def acquire(self, session_id: UUID, owner_id: UUID, start: int, end: int) -> SectionLock:
        """Record a lock over [start, end). Overlaps are not rejected."""
        if start < 0 or end < start:
            raise ValidationError(f"Invalid lock range [{start}, {end})")

        lock = SectionLock(
            session_id=session_id,
            user_id=owner_id,
            start_position=start,
            end_position=end,
            created_at=utcnow(),
            is_active=True,
        )
        self.db.add(lock)
        await self.db.commit()

        self.logger.info("Lock acquired",
                         session_id=str(session_id),
                         user_id=str(owner_id),
                         start=start,
                         end=end)
        return lock

    async def release(self, session_id: UUID, owner_id: UUID, start: int, end: int) -> int:
        """Deactivate the owner's active locks over exactly [start, end)."""
        result = await self.db.execute(
            update(SectionLock)
            .where(
                and_(
                    SectionLock.session_id == session_id,
                    SectionLock.user_id == owner_id,
                    SectionLock.start_position == start,
                    SectionLock.end_position == end,
                    SectionLock.is_active.is_(True),
                )
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount

    async def release_all(self, session_id: UUID, owner_id: UUID) -> int:
        """Deactivate every active lock the owner holds in the session."""
        result = await self.db.execute(
            update(SectionLock)
            .where(
                and_(
                    SectionLock.session_id == session_id,
                    SectionLock.user_id == owner_id,
                    SectionLock.is_active.is_(True),
                )
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount

    async def active_rows(self, session_id: UUID) -> List[LockRow]:
        """Active locks with the owner's display name and email."""
        result = await self.db.execute(
            select(SectionLock, User.display_name, User.email)
            .outerjoin(User, User.id == SectionLock.user_id)
            .where(
                and_(
                    SectionLock.session_id == session_id,
                    SectionLock.is_active.is_(True),
                )
            )
            .order_by(SectionLock.start_position.asc(), SectionLock.created_at.asc())
        )
        return [tuple(row) for row in result.all()]

    def partition(self, rows: Sequence[LockRow], now: datetime) -> Tuple[List[LockRow], List[LockRow]]:
        """Split rows into (live, expired) by the TTL."""
        live, expired = [], []
        for row in rows:
            if now - as_utc(row[0].created_at) > self.ttl:
                expired.append(row)
            else:
                live.append(row)
        return live, expired

    async def evict_expired(self, session_id: UUID, now: datetime) -> int:
        """Mark every lock older than the TTL inactive. Safe to run concurrently."""
        cutoff = now - self.ttl
        result = await self.db.execute(
            update(SectionLock)
            .where(
                and_(
                    SectionLock.session_id == session_id,
                    SectionLock.is_active.is_(True),
                    SectionLock.created_at < cutoff,
                )
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

        if result.rowcount:
            self.logger.info("Expired advisory locks",
                             session_id=str(session_id),
                             count=result.rowcount)
        return result.rowcount

    async def live_locks(self, session_id: UUID, now: Optional[datetime] = None) -> List[LockedSection]:
        """Live locks of the session; expired ones are evicted on the way."""
        now = now or utcnow()
        rows = await self.active_rows(session_id)
        live, expired = self.partition(rows, now)
        if expired:
            await self.evict_expired(session_id, now)
        return [self.to_locked_section(row) for row in live]

    @staticmethod
    def to_locked_section(row: LockRow) -> LockedSection:
        lock, display_name, email = row
        return LockedSection(
            id=lock.id,
            range=(lock.start_position, lock.end_position),
            user_id=lock.user_id,
            timestamp=as_utc(lock.created_at),
            user_name=display_label(display_name, email),
        )
