"""Document API endpoints (read-only, scoped to the caller)."""

from collections.abc import Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user
from src.core.logging import get_logger
from src.db import get_db
from src.db.models import Document, ExtractedKnowledge
from src.schemas import (
    DocumentKnowledgeResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentSummary,
    ExtractedKnowledgeResponse,
)
from src.services.auth import AuthUser

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


async def list_user_documents(db: AsyncSession, user_id: UUID) -> Sequence[Document]:
    """The user's documents, most recently uploaded first."""
    result = await db.execute(
        select(Document)
        .where(Document.user_id == user_id)
        .order_by(Document.uploaded_at.desc())
    )
    return result.scalars().all()


async def get_user_document(db: AsyncSession, document_id: UUID, user_id: UUID) -> Document | None:
    result = await db.execute(
        select(Document).where(Document.id == document_id, Document.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_document_knowledge(
    db: AsyncSession,
    document_id: UUID,
    user_id: UUID,
) -> ExtractedKnowledge | None:
    """The knowledge row for a document, or None while it is still being processed."""
    result = await db.execute(
        select(ExtractedKnowledge)
        .where(
            ExtractedKnowledge.document_id == document_id,
            ExtractedKnowledge.user_id == user_id,
        )
        .order_by(ExtractedKnowledge.created_at.asc())
        .limit(1)
    )
    return result.scalars().first()


async def get_document_or_404(db: AsyncSession, document_id: UUID, user_id: UUID) -> Document:
    document = await get_user_document(db, document_id, user_id)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    return document


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=DocumentListResponse,
    summary="List documents",
    description="List the caller's documents ordered by upload time, newest first.",
)
async def list_documents(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    documents = await list_user_documents(db, user.id)
    items = [DocumentSummary.model_validate(doc) for doc in documents]
    return DocumentListResponse(items=items, total=len(items))


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Get document by ID",
)
async def get_document(
    document_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    document = await get_document_or_404(db, document_id, user.id)
    return DocumentResponse.model_validate(document)


@router.get(
    "/{document_id}/knowledge",
    response_model=DocumentKnowledgeResponse,
    summary="Get extracted knowledge for a document",
    description="Returns `knowledge: null` while the document is still being processed.",
)
async def get_knowledge(
    document_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentKnowledgeResponse:
    knowledge = await get_document_knowledge(db, document_id, user.id)
    if knowledge is None:
        logger.debug("No knowledge yet", document_id=str(document_id))
    return DocumentKnowledgeResponse(
        document_id=document_id,
        knowledge=ExtractedKnowledgeResponse.model_validate(knowledge) if knowledge else None,
    )
