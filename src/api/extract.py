"""
Knowledge extraction endpoint.

    OPTIONS /extract-knowledge  -> 200, CORS headers, empty body
    POST    /extract-knowledge  -> {"success": true, "knowledge": {...}}
                                   | {"error": "..."} with 401/402/404/429/500

Errors use the `{"error": message}` shape rather than FastAPI's `detail`,
which is what browser callers of this endpoint read.
"""

from typing import Any

from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import LLMClientFactory, get_auth_client, get_llm_factory
from src.core.logging import bind_context, get_logger
from src.db import get_db
from src.schemas import (
    ErrorResponse,
    ExtractedKnowledgeResponse,
    ExtractKnowledgeRequest,
    ExtractKnowledgeResponse,
)
from src.services.auth import AuthError, SupabaseAuthClient, bearer_token
from src.services.extraction import DocumentNotFoundError, KnowledgeExtractionService
from src.services.llm_client import LLMPaymentRequiredError, LLMRateLimitError

logger = get_logger(__name__)

router = APIRouter()

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def json_response(payload: dict[str, Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=CORS_HEADERS)


def error_response(message: str, status_code: int) -> JSONResponse:
    return json_response(ErrorResponse(error=message).model_dump(), status_code)


@router.options("", include_in_schema=False)
async def extract_knowledge_preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post(
    "",
    response_model=ExtractKnowledgeResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        402: {"model": ErrorResponse, "description": "AI workspace out of credits"},
        404: {"model": ErrorResponse, "description": "Document not found"},
        429: {"model": ErrorResponse, "description": "AI rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Unhandled error"},
    },
    summary="Extract knowledge from a document",
    description=(
        "Send document text to the chat-completions gateway, store the extracted "
        "keywords, entities, insights, summary and relationships, and mark the "
        "document completed."
    ),
)
async def extract_knowledge(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    auth: SupabaseAuthClient = Depends(get_auth_client),
    llm_factory: LLMClientFactory = Depends(get_llm_factory),
) -> JSONResponse:
    """Extract and persist knowledge for one document."""
    try:
        user = await auth.get_user(bearer_token(authorization))
    except AuthError as exc:
        logger.error("Auth error", error=str(exc))
        return error_response("Unauthorized", status.HTTP_401_UNAUTHORIZED)

    bind_context(user_id=str(user.id))

    try:
        body = ExtractKnowledgeRequest.model_validate(await request.json())
        bind_context(document_id=str(body.document_id))

        async with llm_factory() as llm:
            service = KnowledgeExtractionService(db, llm)
            knowledge = await service.extract_and_store(
                document_id=body.document_id,
                user_id=user.id,
                content=body.content,
                file_type=body.file_type,
            )

        payload = ExtractKnowledgeResponse(
            success=True,
            knowledge=ExtractedKnowledgeResponse.model_validate(knowledge),
        )
        return json_response(payload.model_dump(mode="json"))
    except DocumentNotFoundError as exc:
        return error_response(str(exc), status.HTTP_404_NOT_FOUND)
    except LLMRateLimitError as exc:
        return error_response(str(exc), status.HTTP_429_TOO_MANY_REQUESTS)
    except LLMPaymentRequiredError as exc:
        return error_response(str(exc), status.HTTP_402_PAYMENT_REQUIRED)
    except Exception as exc:
        logger.exception("Error in extract-knowledge", error=str(exc))
        await db.rollback()
        return error_response(str(exc) or "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
