"""
Database package - SQLAlchemy models, session management, and utilities.

Usage:
    from src.db import Base, get_db, get_db_context
    from src.db import Document, ExtractedKnowledge, DocumentStatus
"""

from src.db.base import (
    AsyncSessionLocal,
    Base,
    CreatedAtMixin,
    JSONType,
    UUIDMixin,
    dispose_engine,
    engine,
    init_db,
    metadata,
    utc_now,
)
from src.db.enums import DocumentStatus, EntityCategory, Relevance
from src.db.models import Document, ExtractedKnowledge
from src.db.session import get_db, get_db_context

__all__ = [
    # Base classes
    "Base",
    "UUIDMixin",
    "CreatedAtMixin",
    "JSONType",
    "utc_now",
    # Enums
    "DocumentStatus",
    "EntityCategory",
    "Relevance",
    # Models
    "Document",
    "ExtractedKnowledge",
    # Engine and factory
    "engine",
    "AsyncSessionLocal",
    "metadata",
    # Session utilities
    "get_db",
    "get_db_context",
    # Lifecycle
    "init_db",
    "dispose_engine",
]
