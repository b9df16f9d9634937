"""Document data model."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from promptcollab.database import GUID, Base, utcnow

# Fields captured by every version snapshot and restored by revert.
VERSIONED_FIELDS = ("content", "description", "tags", "category", "category_id", "parameters")

# Fields that survive a revert untouched. Attachments are never versioned.
NON_VERSIONED_FIELDS = ("name", "attachments", "preview_asset_url", "is_public")


class Document(Base):
    """A shared prompt being collaboratively edited."""

    __tablename__ = "prompts"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Versioned content
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    category_id: Mapped[Optional[str]] = mapped_column(String(64))
    parameters: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    # Non-versioned media
    attachments: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    preview_asset_url: Mapped[Optional[str]] = mapped_column(String(1024))

    # Versioning
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, version={self.version})>"

    def versioned_snapshot(self) -> Dict[str, Any]:
        """Copy of the versioned fields as they are now."""
        return {field: getattr(self, field) for field in VERSIONED_FIELDS}
