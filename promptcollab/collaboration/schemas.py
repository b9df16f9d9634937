"""Collaboration Pydantic schemas."""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema exchanged with the editor client in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CursorPosition(CamelModel):
    """Caret position and optional selection within the document text."""
    position: int = Field(..., ge=0, description="Caret offset")
    selection: Optional[Tuple[int, int]] = Field(None, description="Selected range [start, end]")


class Collaborator(CamelModel):
    """A participant as shown to other participants."""
    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display label")
    email: str = Field(default="", description="User email")
    last_seen: datetime = Field(..., description="Last heartbeat")
    is_active: bool = Field(default=True, description="Whether the participant is active")
    cursor: Optional[CursorPosition] = Field(None, description="Last reported cursor")


class SessionInfo(CamelModel):
    """Collaborative session summary."""
    id: UUID
    prompt_id: UUID
    created_at: datetime
    last_activity: datetime
    participants: List[UUID] = Field(default_factory=list)


class LockedSection(CamelModel):
    """A live advisory lock."""
    id: UUID = Field(..., description="Lock ID")
    range: Tuple[int, int] = Field(..., description="Locked range [start, end)")
    user_id: UUID = Field(..., description="Lock owner")
    timestamp: datetime = Field(..., description="When the lock was taken")
    user_name: str = Field(..., description="Owner display label")


class CollaborationStatus(CamelModel):
    """Polling view of a document's collaboration state."""
    session_id: Optional[UUID] = None
    is_active: bool = False
    collaborators: List[Collaborator] = Field(default_factory=list)
    locked_sections: List[LockedSection] = Field(default_factory=list)


class JoinResult(CamelModel):
    """Outcome of joining a document's session."""
    session: SessionInfo
    collaborators: List[Collaborator] = Field(default_factory=list)


# Request schemas
class JoinRequest(CamelModel):
    """Body of a join or leave request."""
    prompt_id: UUID = Field(..., description="Document ID")


class LockRequest(CamelModel):
    """Body of a lock or unlock request."""
    prompt_id: UUID = Field(..., description="Document ID")
    start_pos: int = Field(..., ge=0, description="Range start (inclusive)")
    end_pos: int = Field(..., ge=0, description="Range end (exclusive)")

    @model_validator(mode="after")
    def validate_range(self):
        """Range must not be reversed."""
        if self.end_pos < self.start_pos:
            raise ValueError("endPos must not be smaller than startPos")
        return self


class CursorUpdate(CamelModel):
    """Body of a cursor heartbeat."""
    prompt_id: UUID = Field(..., description="Document ID")
    position: int = Field(..., ge=0, description="Caret offset")
    selection: Optional[Tuple[int, int]] = Field(None, description="Selected range [start, end]")


# Response envelopes
class JoinResponse(JoinResult):
    success: bool = True


class StatusResponse(CamelModel):
    success: bool = True
    status: CollaborationStatus


class LockResponse(CamelModel):
    success: bool = True
    lock: LockedSection


class ReleaseResponse(CamelModel):
    success: bool = True
    released: int


class LeaveResponse(CamelModel):
    success: bool = True
    left: bool


class CursorResponse(CamelModel):
    success: bool = True
    updated: bool
