"""
Server-rendered pages: landing, sign-in, dashboard and the upload form.

The dashboard composes three panels: the upload form, the caller's
documents list, and the knowledge view for the selected document
(`/dashboard?document=<id>`). Notifications travel as `notice` / `error`
query parameters on the redirect that follows each form post.
"""

from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import (
    LLMClientFactory,
    get_auth_client,
    get_llm_factory,
    get_optional_session_user,
    get_session_user,
    get_storage_client,
    session_token,
)
from src.api.documents import get_document_knowledge, list_user_documents
from src.core.config import settings
from src.core.logging import get_logger
from src.db import get_db
from src.db.enums import DocumentStatus, EntityCategory, Relevance
from src.services.auth import AuthError, AuthSession, AuthUser, SupabaseAuthClient
from src.services.extraction import KnowledgeExtractionService
from src.services.file_text import ACCEPTED_EXTENSIONS
from src.services.storage import StorageClient
from src.services.upload import UploadedFile, UploadService, first_file

logger = get_logger(__name__)

router = APIRouter()

_TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates"

templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))


# =============================================================================
# Presentation helpers (exposed to templates)
# =============================================================================

RELEVANCE_CLASSES = {
    Relevance.HIGH.value: "badge badge-high",
    Relevance.MEDIUM.value: "badge badge-medium",
}

ENTITY_CLASSES = {
    EntityCategory.PERSON: "entity entity-person",
    EntityCategory.ORGANIZATION: "entity entity-organization",
    EntityCategory.LOCATION: "entity entity-location",
    EntityCategory.DATE: "entity entity-date",
    EntityCategory.OTHER: "entity entity-other",
}

STATUS_ICONS = {
    DocumentStatus.COMPLETED.value: "check",
    DocumentStatus.PROCESSING.value: "spinner",
}

STATUS_BADGES = {
    DocumentStatus.COMPLETED.value: "default",
    DocumentStatus.PROCESSING.value: "secondary",
    DocumentStatus.PENDING.value: "outline",
}


def relevance_class(relevance: str | None) -> str:
    return RELEVANCE_CLASSES.get((relevance or "").lower(), "badge badge-low")


def entity_class(category: str | None) -> str:
    return ENTITY_CLASSES[EntityCategory.from_string(category)]


def status_icon(status_value: str) -> str:
    """spinner while processing, check once completed, clock otherwise."""
    return STATUS_ICONS.get(status_value, "clock")


def status_badge(status_value: str) -> str:
    return STATUS_BADGES.get(status_value, "outline")


def format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


templates.env.globals.update(
    settings=settings,
    relevance_class=relevance_class,
    entity_class=entity_class,
    status_icon=status_icon,
    status_badge=status_badge,
    accepted_extensions=",".join(sorted(ACCEPTED_EXTENSIONS)),
)
templates.env.filters["format_date"] = format_date


def _redirect(request: Request, route: str, **params: Any) -> RedirectResponse:
    url = request.url_for(route).include_query_params(**{k: v for k, v in params.items() if v})
    return RedirectResponse(url=str(url), status_code=status.HTTP_303_SEE_OTHER)


def _start_session(response: RedirectResponse, session: AuthSession) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


# =============================================================================
# Landing page
# =============================================================================


@router.get("/", response_class=HTMLResponse, name="index")
async def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "index.html", {})


# =============================================================================
# Auth pages
# =============================================================================


@router.get("/auth", response_class=HTMLResponse, response_model=None, name="auth")
async def auth_page(
    request: Request,
    notice: str | None = Query(default=None),
    error: str | None = Query(default=None),
    user: AuthUser | None = Depends(get_optional_session_user),
) -> HTMLResponse | RedirectResponse:
    if user is not None:
        return _redirect(request, "dashboard")
    return templates.TemplateResponse(request, "auth.html", {"notice": notice, "error": error})


@router.post("/auth", response_model=None, name="sign_in")
async def sign_in(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    auth: SupabaseAuthClient = Depends(get_auth_client),
) -> HTMLResponse | RedirectResponse:
    try:
        session = await auth.sign_in_with_password(email, password)
    except AuthError as exc:
        return templates.TemplateResponse(
            request,
            "auth.html",
            {"error": str(exc), "email": email},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    response = _redirect(request, "dashboard")
    _start_session(response, session)
    return response


@router.post("/auth/sign-up", response_model=None, name="sign_up")
async def sign_up(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    auth: SupabaseAuthClient = Depends(get_auth_client),
) -> HTMLResponse | RedirectResponse:
    try:
        session = await auth.sign_up(email, password)
    except AuthError as exc:
        return templates.TemplateResponse(
            request,
            "auth.html",
            {"error": str(exc), "email": email, "mode": "sign-up"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if session is None:
        return _redirect(request, "auth", notice="Check your email to confirm your account.")

    response = _redirect(request, "dashboard")
    _start_session(response, session)
    return response


@router.post("/auth/sign-out", name="sign_out")
async def sign_out(
    request: Request,
    auth: SupabaseAuthClient = Depends(get_auth_client),
) -> RedirectResponse:
    token = session_token(request)
    if token:
        await auth.sign_out(token)
    response = _redirect(request, "auth")
    response.delete_cookie(settings.session_cookie_name)
    return response


# =============================================================================
# Dashboard
# =============================================================================


@router.get("/dashboard", response_class=HTMLResponse, name="dashboard")
async def dashboard(
    request: Request,
    document: UUID | None = Query(default=None),
    notice: str | None = Query(default=None),
    error: str | None = Query(default=None),
    user: AuthUser = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
) -> HTMLResponse:
    documents = await list_user_documents(db, user.id)
    knowledge = await get_document_knowledge(db, document, user.id) if document else None

    context = {
        "user": user,
        "documents": documents,
        "selected_document": document,
        "knowledge": knowledge,
        "notice": notice,
        "error": error,
    }
    return templates.TemplateResponse(request, "dashboard.html", context)


@router.post("/dashboard/upload", name="upload")
async def upload(
    request: Request,
    files: list[UploadFile] = File(...),
    user: AuthUser | None = Depends(get_optional_session_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage_client),
    llm_factory: LLMClientFactory = Depends(get_llm_factory),
) -> RedirectResponse:
    upload_file = first_file(files)
    if upload_file is None:
        return _redirect(request, "dashboard")

    file = UploadedFile(
        filename=upload_file.filename or "upload",
        data=await upload_file.read(settings.max_upload_bytes + 1),
        content_type=upload_file.content_type,
    )
    if file.size > settings.max_upload_bytes:
        return _redirect(request, "dashboard", error="File is too large")

    try:
        async with llm_factory() as llm:
            service = UploadService(db, storage, KnowledgeExtractionService(db, llm))
            await service.upload(user, file)
    except Exception as exc:
        logger.exception("Upload error", error=str(exc), filename=file.filename)
        await db.rollback()
        return _redirect(request, "dashboard", error=str(exc) or "Failed to process document")

    return _redirect(request, "dashboard", notice="Document processed and insights extracted.")
