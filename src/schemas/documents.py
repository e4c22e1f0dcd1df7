"""Pydantic schemas for Document API endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.db.enums import DocumentStatus


class DocumentResponse(BaseModel):
    """Schema for document response."""

    id: UUID = Field(description="Document UUID")
    user_id: UUID = Field(description="Owning user id")
    title: str = Field(description="Original filename")
    file_type: str = Field(description="File extension")
    file_path: str = Field(description="Object storage key")
    file_size: int = Field(description="Size in bytes")
    status: DocumentStatus = Field(description="pending | processing | completed")
    uploaded_at: datetime = Field(description="Upload timestamp")
    processed_at: datetime | None = Field(default=None, description="Extraction completion timestamp")

    model_config = ConfigDict(from_attributes=True)


class DocumentSummary(BaseModel):
    """Summarized document for list views."""

    id: UUID = Field(description="Document UUID")
    title: str = Field(description="Original filename")
    file_type: str = Field(description="File extension")
    status: DocumentStatus = Field(description="pending | processing | completed")
    uploaded_at: datetime = Field(description="Upload timestamp")

    model_config = ConfigDict(from_attributes=True)


class DocumentListResponse(BaseModel):
    """The caller's documents, most recently uploaded first."""

    items: list[DocumentSummary]
    total: int = Field(description="Number of documents")
