"""Collaboration data models: sessions, participants and advisory locks."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, UniqueConstraint, text
)
from sqlalchemy.orm import Mapped, mapped_column

from promptcollab.database import GUID, Base, utcnow


class CollaborativeSession(Base):
    """The live collaboration context for one document."""

    __tablename__ = "collaborative_sessions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        # At most one active session per document
        Index(
            "uq_collaborative_sessions_active_document",
            "document_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_collaborative_sessions_document_id", "document_id"),
    )

    def __repr__(self) -> str:
        return f"<CollaborativeSession(id={self.id}, document_id={self.document_id}, active={self.is_active})>"


class Participant(Base):
    """A user attached to a session via heartbeat presence."""

    __tablename__ = "collaborative_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("collaborative_sessions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    cursor_position: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_collaborative_participants_session_user"),
        Index("ix_collaborative_participants_session_active", "session_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Participant(session_id={self.session_id}, user_id={self.user_id}, active={self.is_active})>"


class SectionLock(Base):
    """Advisory claim over a text range. Never blocks a write."""

    __tablename__ = "collaborative_locks"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("collaborative_sessions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    start_position: Mapped[int] = mapped_column(Integer, nullable=False)
    end_position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("start_position >= 0", name="start_non_negative"),
        CheckConstraint("end_position >= start_position", name="range_ordered"),
        Index("ix_collaborative_locks_session_active", "session_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<SectionLock(range=[{self.start_position}, {self.end_position}), user_id={self.user_id})>"
