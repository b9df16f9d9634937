"""Document store: single-row reads and patches of the prompts table."""

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptcollab.documents.models import Document
from promptcollab.exceptions import InfrastructureError, NotFoundError

logger = structlog.get_logger()


class DocumentStore:
    """Reads and patches documents one row at a time."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(component="document_store")

    async def find_document(self, document_id: UUID) -> Optional[Document]:
        """Return the document or None."""
        try:
            result = await self.db.execute(
                select(Document).where(Document.id == document_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error("Failed to load document",
                              document_id=str(document_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to load document: {str(e)}")

    async def get_document(self, document_id: UUID) -> Document:
        """Return the document or raise NotFoundError."""
        document = await self.find_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def update_document(self, document_id: UUID, patch: Dict[str, Any]) -> Document:
        """Apply a patch to one document row and commit."""
        try:
            result = await self.db.execute(
                update(Document)
                .where(Document.id == document_id)
                .values(**patch)
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise NotFoundError(f"Document {document_id} not found")
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("Failed to update document",
                              document_id=str(document_id),
                              error=str(e))
            raise InfrastructureError(f"Failed to update document: {str(e)}")

        document = await self.get_document(document_id)
        await self.db.refresh(document)
        return document
