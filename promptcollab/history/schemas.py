"""Version history Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from promptcollab.collaboration.schemas import CamelModel
from promptcollab.database import as_utc
from promptcollab.history.diff import ChangeSummary


class VersionResponse(CamelModel):
    """A stored version as listed in the history."""
    id: UUID
    prompt_id: UUID
    version_number: int
    content: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    category_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    author_id: UUID
    author_name: str
    message: str
    changes_summary: ChangeSummary = Field(default_factory=ChangeSummary)
    created_at: datetime

    @classmethod
    def from_version(cls, version) -> "VersionResponse":
        return cls(
            id=version.id,
            prompt_id=version.document_id,
            version_number=version.version_number,
            content=version.content,
            description=version.description,
            tags=version.tags or [],
            category=version.category,
            category_id=version.category_id,
            parameters=version.parameters or {},
            author_id=version.author_id,
            author_name=version.author_name,
            message=version.message,
            changes_summary=ChangeSummary.model_validate(version.changes_summary or {}),
            created_at=as_utc(version.created_at),
        )


class SavedVersion(CamelModel):
    """Compact view of a version returned right after saving it."""
    id: UUID
    content: str
    timestamp: datetime
    author: str
    message: str
    version_number: int
    changes_summary: ChangeSummary


class DocumentResponse(CamelModel):
    """Document as returned after a revert."""
    id: UUID
    name: str
    owner_id: UUID
    is_public: bool
    content: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    category_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    preview_asset_url: Optional[str] = None
    version: int
    updated_at: datetime


class RevertResult(CamelModel):
    """Outcome of reverting a document to an earlier version."""
    document: DocumentResponse
    previous_version: int
    new_version: int
    reverted_from_version: int


# Request schemas
class SaveVersionRequest(CamelModel):
    """Body of a save-version request."""
    prompt_id: UUID = Field(..., description="Document ID")
    content: str = Field(..., description="Full document text")
    message: Optional[str] = Field(None, max_length=1000, description="Version message")


class RevertRequest(CamelModel):
    """Body of a revert request."""
    version_id: UUID = Field(..., description="Version to restore")


# Response envelopes
class SaveVersionResponse(CamelModel):
    success: bool = True
    version: SavedVersion


class VersionListResponse(CamelModel):
    success: bool = True
    data: List[VersionResponse]
    total: int


class VersionDetailResponse(CamelModel):
    success: bool = True
    data: VersionResponse


class RevertResponse(CamelModel):
    success: bool = True
    message: str
    data: RevertResult
