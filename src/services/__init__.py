"""
Services package - Business logic and external API clients.

This package contains:
- Auth client for the hosted auth service
- Storage client for the hosted object storage
- LLM client for the chat-completions gateway
- Knowledge extraction service
- File text reader and the upload pipeline
"""

from src.services.auth import AuthError, AuthSession, AuthUser, SupabaseAuthClient, bearer_token
from src.services.extraction import (
    KNOWLEDGE_EXTRACTION_SYSTEM_PROMPT,
    DocumentNotFoundError,
    KnowledgeExtractionService,
    KnowledgeResult,
    extract_from_text,
)
from src.services.file_text import (
    ACCEPTED_TYPES,
    UnsupportedFileTypeError,
    file_extension,
    is_accepted,
    read_text,
)
from src.services.llm_client import (
    BaseLLMClient,
    GatewayClient,
    LLMAPIError,
    LLMError,
    LLMMessage,
    LLMParseError,
    LLMPaymentRequiredError,
    LLMProvider,
    LLMRateLimitError,
    LLMResponse,
    MockLLMClient,
    get_llm_client,
)
from src.services.storage import StorageClient, StorageError, build_object_path
from src.services.upload import (
    NotAuthenticatedError,
    UploadedFile,
    UploadResult,
    UploadService,
    first_file,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthSession",
    "AuthUser",
    "SupabaseAuthClient",
    "bearer_token",
    # Storage
    "StorageClient",
    "StorageError",
    "build_object_path",
    # LLM Client
    "BaseLLMClient",
    "GatewayClient",
    "MockLLMClient",
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMError",
    "LLMAPIError",
    "LLMParseError",
    "LLMPaymentRequiredError",
    "LLMRateLimitError",
    "get_llm_client",
    # Extraction
    "KNOWLEDGE_EXTRACTION_SYSTEM_PROMPT",
    "DocumentNotFoundError",
    "KnowledgeExtractionService",
    "KnowledgeResult",
    "extract_from_text",
    # Files
    "ACCEPTED_TYPES",
    "UnsupportedFileTypeError",
    "file_extension",
    "is_accepted",
    "read_text",
    # Upload
    "NotAuthenticatedError",
    "UploadedFile",
    "UploadResult",
    "UploadService",
    "first_file",
]
