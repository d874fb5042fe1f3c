"""
Documents API — the caller's governance corpus (ADRs, governance rules,
platform standards). The reasoning stage reads every document listed here.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.api.deps import get_db, require
from govgen.auth.permissions import Permission
from govgen.auth.context import RequestContext
from govgen.schemas.schemas import DocumentCreate, DocumentUpdate, DocumentOut, DocumentListResponse
from govgen.services.document_service import DocumentService

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    ctx: RequestContext = Depends(require(Permission.DOCUMENTS_READ)),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's documents in creation order."""
    docs = await DocumentService(db).list_documents(ctx.user_id)
    items = [DocumentOut.model_validate(d) for d in docs]
    return DocumentListResponse(documents=items, total=len(items))


@router.post("", response_model=DocumentOut, status_code=201)
async def create_document(
    body: DocumentCreate,
    ctx: RequestContext = Depends(require(Permission.DOCUMENTS_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    doc = await DocumentService(db).create(
        ctx.user_id,
        title=body.title,
        description=body.description,
        content=body.content,
        doc_type=body.type,
        file_url=body.file_url,
        file_key=body.file_key,
    )
    return DocumentOut.model_validate(doc)


@router.get("/{document_id}", response_model=DocumentOut)
async def get_document(
    document_id: int,
    ctx: RequestContext = Depends(require(Permission.DOCUMENTS_READ)),
    db: AsyncSession = Depends(get_db),
):
    doc = await DocumentService(db).get(document_id, ctx.user_id)
    return DocumentOut.model_validate(doc)


@router.patch("/{document_id}", response_model=DocumentOut)
async def update_document(
    document_id: int,
    body: DocumentUpdate,
    ctx: RequestContext = Depends(require(Permission.DOCUMENTS_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    doc = await DocumentService(db).update(
        document_id,
        ctx.user_id,
        title=body.title,
        description=body.description,
        content=body.content,
        doc_type=body.type,
    )
    return DocumentOut.model_validate(doc)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: int,
    ctx: RequestContext = Depends(require(Permission.DOCUMENTS_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    await DocumentService(db).delete(document_id, ctx.user_id)
