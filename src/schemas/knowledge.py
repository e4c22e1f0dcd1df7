"""Pydantic schemas for knowledge extraction and retrieval."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Request Schemas
# =============================================================================


class ExtractKnowledgeRequest(BaseModel):
    """Body of `POST /extract-knowledge`."""

    document_id: UUID = Field(alias="documentId", description="Target document")
    content: str = Field(description="Raw document text")
    file_type: str | None = Field(default=None, alias="fileType", description="File extension")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Response Schemas
# =============================================================================


class ExtractedKnowledgeResponse(BaseModel):
    """A stored ExtractedKnowledge row.

    The five knowledge fields are stored and returned exactly as the model
    produced them, whatever their JSON type.
    """

    id: UUID
    user_id: UUID
    document_id: UUID
    keywords: Any = Field(default_factory=list)
    entities: Any = Field(default_factory=list)
    key_insights: Any = Field(default_factory=list)
    summary: Any = ""
    relationships: Any = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExtractKnowledgeResponse(BaseModel):
    """Success body of `POST /extract-knowledge`."""

    success: bool = True
    knowledge: ExtractedKnowledgeResponse


class DocumentKnowledgeResponse(BaseModel):
    """Knowledge for one document; null while it is still being processed."""

    document_id: UUID
    knowledge: ExtractedKnowledgeResponse | None = None
