"""
Database models.

- Document: An uploaded file and its processing status
- ExtractedKnowledge: Structured output of one extraction call

Usage:
    from src.db.models import Document, ExtractedKnowledge
"""

from src.db.models.document import Document
from src.db.models.extracted_knowledge import ExtractedKnowledge

__all__ = [
    "Document",
    "ExtractedKnowledge",
]
