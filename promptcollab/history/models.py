"""Version history data model."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from promptcollab.database import GUID, Base, utcnow


class DocumentVersion(Base):
    """Immutable, numbered snapshot of a document's versioned fields."""

    __tablename__ = "prompt_versions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Snapshot of the versioned fields
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    category_id: Mapped[Optional[str]] = mapped_column(String(64))
    parameters: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    # Provenance
    author_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    changes_summary: Mapped[Dict[str, int]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_prompt_versions_document_number"),
        Index("ix_prompt_versions_document_id", "document_id"),
    )

    def __repr__(self) -> str:
        return f"<DocumentVersion(document_id={self.document_id}, number={self.version_number})>"
