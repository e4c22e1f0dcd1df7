"""
Knowledge extraction service.

Sends a document's text to the chat-completions gateway with a fixed
instruction prompt and persists the structured answer.

Features:
- Fixed system prompt requesting keywords, entities, key insights,
  summary and relationships as one JSON object
- Best-effort parsing: missing fields default to empty values
- Storage of one ExtractedKnowledge row per call and the document's
  transition to completed
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.db.models import Document, ExtractedKnowledge
from src.services.llm_client import BaseLLMClient, LLMMessage, LLMParseError, get_llm_client

logger = get_logger(__name__)


# =============================================================================
# Prompts
# =============================================================================

KNOWLEDGE_EXTRACTION_SYSTEM_PROMPT = """You are an expert knowledge extraction system. Analyze documents and extract:
1. Keywords (important terms and concepts)
2. Entities (people, organizations, locations, dates)
3. Key insights (main takeaways and important points)
4. Summary (concise overview)
5. Relationships (connections between entities and concepts)

Return the results as JSON with this structure:
{
  "keywords": [{"term": "string", "frequency": number, "relevance": "high"|"medium"|"low"}],
  "entities": [{"name": "string", "type": "person"|"organization"|"location"|"date"|"other", "context": "string"}],
  "key_insights": ["string"],
  "summary": "string",
  "relationships": [{"from": "string", "to": "string", "type": "string", "description": "string"}]
}"""


def build_messages(content: str, file_type: str | None) -> list[LLMMessage]:
    """Build the two-message conversation for one document."""
    return [
        LLMMessage(role="system", content=KNOWLEDGE_EXTRACTION_SYSTEM_PROMPT),
        LLMMessage(
            role="user",
            content=f"Extract knowledge from this {file_type} document:\n\n{content}",
        ),
    ]


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 1


# =============================================================================
# Exceptions
# =============================================================================


class DocumentNotFoundError(Exception):
    """Raised when the target document does not exist or is not the caller's."""

    def __init__(self, document_id: UUID):
        super().__init__("Document not found")
        self.document_id = document_id


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class KnowledgeResult:
    """Parsed model output, with missing fields already defaulted."""

    keywords: Any = field(default_factory=list)
    entities: Any = field(default_factory=list)
    key_insights: Any = field(default_factory=list)
    summary: Any = ""
    relationships: Any = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeResult":
        return cls(
            keywords=data.get("keywords") or [],
            entities=data.get("entities") or [],
            key_insights=data.get("key_insights") or [],
            summary=data.get("summary") or "",
            relationships=data.get("relationships") or [],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": self.keywords,
            "entities": self.entities,
            "key_insights": self.key_insights,
            "summary": self.summary,
            "relationships": self.relationships,
        }


# =============================================================================
# Extraction Service
# =============================================================================


class KnowledgeExtractionService:
    """
    Extract knowledge from a document's text and store it.

    Usage:
        async with get_llm_client() as llm:
            service = KnowledgeExtractionService(db, llm)
            knowledge = await service.extract_and_store(
                document_id, user_id, content, "txt"
            )
    """

    def __init__(self, db: AsyncSession | None, llm_client: BaseLLMClient):
        self.db = db
        self.llm = llm_client

    async def extract(self, content: str, file_type: str | None) -> KnowledgeResult:
        """Run the extraction prompt against the model; nothing is persisted."""
        response = await self.llm.complete(build_messages(content, file_type), json_mode=True)
        result = self.parse_response(response.content)

        logger.info(
            "Knowledge extracted",
            keywords=_count(result.keywords),
            entities=_count(result.entities),
            insights=_count(result.key_insights),
            relationships=_count(result.relationships),
            tokens=response.total_tokens,
        )
        return result

    def parse_response(self, response: str) -> KnowledgeResult:
        """Parse the model's JSON answer into a KnowledgeResult."""
        try:
            data = json.loads(self._extract_json(response))
        except json.JSONDecodeError as e:
            logger.error("Failed to parse model output", error=str(e), raw_response=response[:2000])
            raise LLMParseError(f"Failed to parse model output: {e}") from e

        if not isinstance(data, dict):
            raise LLMParseError("Model output is not a JSON object")

        return KnowledgeResult.from_dict(data)

    def _extract_json(self, text: str) -> str:
        """Strip a markdown code fence around the JSON object, if present."""
        json_match = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, re.DOTALL)
        if json_match:
            return json_match.group(1)
        return text.strip()

    async def get_owned_document(self, document_id: UUID, user_id: UUID) -> Document:
        """Load a document belonging to user_id or raise DocumentNotFoundError."""
        result = await self._session.execute(
            select(Document).where(Document.id == document_id, Document.user_id == user_id)
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def extract_and_store(
        self,
        document_id: UUID,
        user_id: UUID,
        content: str,
        file_type: str | None,
    ) -> ExtractedKnowledge:
        """
        Extract knowledge for a document and persist it.

        Writes happen only after the model call succeeded: the knowledge row
        is inserted, then the document is marked completed, in one commit.
        """
        document = await self.get_owned_document(document_id, user_id)

        logger.info("Extracting knowledge from document", document_id=str(document_id))
        result = await self.extract(content, file_type)

        knowledge = ExtractedKnowledge(
            document_id=document.id,
            user_id=user_id,
            **result.to_dict(),
        )
        self._session.add(knowledge)
        await self._session.flush()

        document.mark_completed()
        await self._session.commit()

        logger.info(
            "Knowledge stored",
            document_id=str(document_id),
            knowledge_id=str(knowledge.id),
        )
        return knowledge

    @property
    def _session(self) -> AsyncSession:
        if self.db is None:
            raise RuntimeError("KnowledgeExtractionService was created without a database session")
        return self.db


# =============================================================================
# Convenience Functions
# =============================================================================


async def extract_from_text(
    text: str,
    file_type: str | None = "txt",
    llm_client: BaseLLMClient | None = None,
) -> KnowledgeResult:
    """
    Extract knowledge from text without touching the database.

    Example:
        result = await extract_from_text("Acme Corp opened an office in Berlin.")
    """
    if llm_client is None:
        llm_client = get_llm_client()

    async with llm_client:
        service = KnowledgeExtractionService(db=None, llm_client=llm_client)
        return await service.extract(text, file_type)
