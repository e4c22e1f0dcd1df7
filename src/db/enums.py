"""
Controlled vocabulary enums for documents and extracted knowledge.

This module defines:
- Document processing statuses (stored on the documents table)
- Keyword relevance tiers and entity categories requested from the model

The model output is stored as-is; the vocabularies below drive prompt
construction and dashboard styling, never rejection of model output.
"""

from enum import Enum


class DocumentStatus(str, Enum):
    """
    Lifecycle of an uploaded document.

    Lifecycle:
        PENDING -> PROCESSING -> COMPLETED

    Uploads insert rows directly as PROCESSING; PENDING exists for rows
    created by other tools before extraction is requested.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class Relevance(str, Enum):
    """Relevance tier of an extracted keyword."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EntityCategory(str, Enum):
    """Category of an extracted named entity."""

    PERSON = "person"
    ORGANIZATION = "organization"
    LOCATION = "location"
    DATE = "date"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: str | None) -> "EntityCategory":
        """
        Map a model-provided category onto the vocabulary.

        Unknown or missing categories fall back to OTHER.

        Examples:
            EntityCategory.from_string("Person")   -> EntityCategory.PERSON
            EntityCategory.from_string("company")  -> EntityCategory.OTHER
        """
        if not value:
            return cls.OTHER
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.OTHER
