"""Pydantic schemas for API request/response models."""

from src.schemas.common import ErrorResponse, HealthResponse
from src.schemas.documents import DocumentListResponse, DocumentResponse, DocumentSummary
from src.schemas.knowledge import (
    DocumentKnowledgeResponse,
    ExtractedKnowledgeResponse,
    ExtractKnowledgeRequest,
    ExtractKnowledgeResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Documents
    "DocumentListResponse",
    "DocumentResponse",
    "DocumentSummary",
    # Knowledge
    "DocumentKnowledgeResponse",
    "ExtractedKnowledgeResponse",
    "ExtractKnowledgeRequest",
    "ExtractKnowledgeResponse",
]
