"""
ExtractedKnowledge model for the structured output of one extraction call.

Each row holds the five fields the model is asked for. Lists are stored as
JSON exactly as returned (after defaulting missing fields), so the shape of
each item is whatever the model produced:

- keywords:      [{"term": str, "frequency": int, "relevance": "high"|"medium"|"low"}]
- entities:      [{"name": str, "type": "person"|..., "context": str}]
- key_insights:  [str]
- summary:       str
- relationships: [{"from": str, "to": str, "type": str, "description": str}]

There is no unique constraint on document_id; concurrent extraction calls
for the same document can each insert a row. Readers take the oldest one.
"""

import uuid

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, JSONType, UUIDMixin


class ExtractedKnowledge(UUIDMixin, CreatedAtMixin, Base):
    """Knowledge extracted from a single document."""

    __tablename__ = "extracted_knowledge"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Owning user id from the auth service",
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    keywords: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    entities: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    key_insights: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")

    relationships: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    def __repr__(self) -> str:
        return (
            f"<ExtractedKnowledge(document_id={self.document_id}, "
            f"keywords={len(self.keywords or [])}, entities={len(self.entities or [])})>"
        )
