"""
LLM client abstraction for knowledge extraction.

This module provides a unified interface for calling an OpenAI-compatible
chat-completions gateway in JSON-object response mode.

Features:
- Async HTTP requests with a configurable timeout
- Status classification (rate limit, payment required, other errors)
- Optional retry of transport failures (off by default)
- Mock client for testing
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Enums and Constants
# =============================================================================


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    GATEWAY = "gateway"
    MOCK = "mock"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class LLMMessage:
    """Represents a message in the conversation."""

    role: str  # "system", "user", or "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM API call."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict[str, int] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# =============================================================================
# Exceptions
# =============================================================================


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when the gateway answers 429."""

    pass


class LLMPaymentRequiredError(LLMError):
    """Raised when the gateway answers 402 (workspace out of credits)."""

    pass


class LLMAPIError(LLMError):
    """Raised when the gateway returns any other non-success status."""

    pass


class LLMParseError(LLMError):
    """Raised when the response body cannot be parsed."""

    pass


# =============================================================================
# Base LLM Client
# =============================================================================


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize LLM client.

        Args:
            model: Model identifier
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.model = model
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseLLMClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise RuntimeError(
                "LLM client must be used as async context manager: "
                "async with Client() as client: ..."
            )
        return self._client

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = True,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages
            json_mode: Request a JSON-object shaped answer

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    def provider(self) -> LLMProvider:
        """Get the provider type."""
        pass


# =============================================================================
# Chat-completions gateway client
# =============================================================================


class GatewayClient(BaseLLMClient):
    """Client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(model=model or settings.llm_model, timeout=timeout, transport=transport)
        self.api_key = api_key or settings.llm_api_key
        self.url = url or settings.llm_gateway_url
        self.max_attempts = max_attempts or settings.llm_max_attempts

        if not self.api_key:
            raise ValueError("LLM API key not configured. Set LLM_API_KEY in .env")

    def provider(self) -> LLMProvider:
        return LLMProvider.GATEWAY

    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = True,
    ) -> LLMResponse:
        """Generate a completion; HTTP error statuses are never retried."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug("Chat completion request", model=self.model, messages=len(messages))

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        response = await retrying(self.client.post, self.url, headers=headers, json=payload)
        self._raise_for_status(response)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMParseError(f"Unexpected chat completion response: {e}") from e

        usage = data.get("usage") or {}
        return LLMResponse(
            content=content or "",
            model=data.get("model", self.model),
            provider=LLMProvider.GATEWAY,
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
            raw_response=data,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return

        error_text = response.text
        logger.error(
            "AI API error",
            status_code=response.status_code,
            response=error_text[:1000],
        )

        if response.status_code == 429:
            raise LLMRateLimitError("Rate limit exceeded. Please try again later.")
        if response.status_code == 402:
            raise LLMPaymentRequiredError("Payment required. Please add credits to your workspace.")
        raise LLMAPIError(f"AI API error: {error_text}")


# =============================================================================
# Mock Client (for testing)
# =============================================================================


class MockLLMClient(BaseLLMClient):
    """
    Mock LLM client for testing without API calls.

    Returns predefined responses in order, or a canned extraction result.
    Raising responses can be queued as exception instances.
    """

    def __init__(self, model: str = "mock-model", timeout: float | None = None):
        super().__init__(model=model, timeout=timeout)
        self._responses: list[str | Exception] = []
        self._call_count = 0
        self.calls: list[list[LLMMessage]] = []

    async def __aenter__(self) -> "MockLLMClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def provider(self) -> LLMProvider:
        return LLMProvider.MOCK

    def set_responses(self, responses: list[str | Exception]) -> None:
        """Set predefined responses for testing."""
        self._responses = responses
        self._call_count = 0

    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = True,  # noqa: ARG002 - Required by interface
    ) -> LLMResponse:
        self.calls.append(messages)

        if self._responses:
            idx = min(self._call_count, len(self._responses) - 1)
            item = self._responses[idx]
            self._call_count += 1
            if isinstance(item, Exception):
                raise item
            content = item
        else:
            content = self._generate_default_response()

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.MOCK,
            usage={"input_tokens": 100, "output_tokens": 50},
            raw_response={},
        )

    def _generate_default_response(self) -> str:
        return json.dumps({
            "keywords": [
                {"term": "knowledge extraction", "frequency": 3, "relevance": "high"},
                {"term": "documents", "frequency": 2, "relevance": "medium"},
            ],
            "entities": [
                {"name": "Acme Corp", "type": "organization", "context": "Acme Corp published the report."},
                {"name": "Berlin", "type": "location", "context": "The office is in Berlin."},
            ],
            "key_insights": ["The document describes a knowledge extraction workflow."],
            "summary": "A short document about extracting knowledge from files.",
            "relationships": [
                {
                    "from": "Acme Corp",
                    "to": "Berlin",
                    "type": "located_in",
                    "description": "Acme Corp has an office in Berlin.",
                }
            ],
        })


# =============================================================================
# Factory Function
# =============================================================================


def get_llm_client(
    provider: str | LLMProvider | None = None,
    **kwargs,
) -> BaseLLMClient:
    """
    Factory function to get an LLM client.

    Example:
        async with get_llm_client("gateway") as client:
            response = await client.complete(messages)
    """
    if provider is None:
        provider = settings.llm_provider

    if isinstance(provider, str):
        provider = LLMProvider(provider.lower())

    if provider == LLMProvider.GATEWAY:
        return GatewayClient(**kwargs)
    elif provider == LLMProvider.MOCK:
        return MockLLMClient(**kwargs)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
