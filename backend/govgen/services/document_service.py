"""
Owner-scoped CRUD over governance documents.

Documents are independent of generations: deleting one never touches a
generation whose reasoning was built from it.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.errors import InvalidInput, NotFound, require_text
from govgen.models import GovernanceDocument, DOCUMENT_TYPES

logger = logging.getLogger(__name__)


def _check_type(doc_type: str) -> str:
    if doc_type not in DOCUMENT_TYPES:
        raise InvalidInput(f"type must be one of {', '.join(DOCUMENT_TYPES)}")
    return doc_type


class DocumentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_documents(self, owner_id: str) -> list[GovernanceDocument]:
        """Owner's documents in creation order."""
        try:
            result = await self.session.execute(
                select(GovernanceDocument)
                .where(GovernanceDocument.owner_id == owner_id)
                .order_by(GovernanceDocument.created_at.asc(), GovernanceDocument.id.asc())
            )
        except SQLAlchemyError:
            # Leave the session usable for the caller's next write.
            await self.session.rollback()
            raise
        return list(result.scalars())

    async def create(
        self,
        owner_id: str,
        *,
        title: str,
        content: str,
        doc_type: str,
        description: str | None = None,
        file_url: str | None = None,
        file_key: str | None = None,
    ) -> GovernanceDocument:
        require_text(title, "title")
        require_text(content, "content")
        _check_type(doc_type)

        doc = GovernanceDocument(
            owner_id=owner_id,
            title=title,
            description=description,
            content=content,
            doc_type=doc_type,
            file_url=file_url,
            file_key=file_key,
            vectorized=False,
        )
        self.session.add(doc)
        await self.session.flush()
        await self.session.refresh(doc)
        logger.info("Document %s created for %s (%s)", doc.id, owner_id, doc_type)
        return doc

    async def get(self, document_id: int, owner_id: str | None = None) -> GovernanceDocument:
        doc = await self.session.get(GovernanceDocument, document_id)
        if doc is None or (owner_id is not None and doc.owner_id != owner_id):
            raise NotFound(f"Document {document_id} not found")
        return doc

    async def update(
        self,
        document_id: int,
        owner_id: str | None = None,
        *,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
        doc_type: str | None = None,
    ) -> GovernanceDocument:
        if title is not None:
            require_text(title, "title")
        if content is not None:
            require_text(content, "content")
        if doc_type is not None:
            _check_type(doc_type)

        doc = await self.get(document_id, owner_id)
        if title is not None:
            doc.title = title
        if description is not None:
            doc.description = description
        if content is not None:
            doc.content = content
        if doc_type is not None:
            doc.doc_type = doc_type
        await self.session.flush()
        await self.session.refresh(doc)
        return doc

    async def delete(self, document_id: int, owner_id: str | None = None) -> None:
        doc = await self.get(document_id, owner_id)
        await self.session.delete(doc)
        await self.session.flush()
        logger.info("Document %s deleted", document_id)
