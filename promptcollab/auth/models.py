"""User model as seen by the collaboration service."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from promptcollab.database import GUID, Base

ANONYMOUS_LABEL = "Anonymous"


class User(Base):
    """Platform user. Owned by the identity service; read-only here."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


def display_label(display_name: Optional[str], email: Optional[str]) -> str:
    """Pick display name, then email, then the anonymous placeholder."""
    return display_name or email or ANONYMOUS_LABEL
