"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api import documents_router, extract_router, pages_router
from src.api.deps import LoginRequiredError
from src.core.config import settings
from src.core.logging import RequestContextMiddleware, get_logger, setup_logging
from src.db.base import dispose_engine
from src.schemas import HealthResponse

logger = get_logger(__name__)

VERSION = "0.1.0"
EXTRACT_PREFIX = "/extract-knowledge"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    setup_logging()
    logger.info("Starting application", llm_provider=settings.llm_provider, model=settings.llm_model)
    yield
    await dispose_engine()


class RouteExemptCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that leaves some path prefixes to their own CORS handling."""

    def __init__(self, app: ASGIApp, exempt_paths: tuple[str, ...] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exempt_paths = exempt_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.exempt_paths):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


async def login_required_handler(request: Request, _exc: LoginRequiredError) -> RedirectResponse:
    return RedirectResponse(url=str(request.url_for("auth")), status_code=status.HTTP_303_SEE_OTHER)


def create_app() -> FastAPI:
    """Application factory for creating the FastAPI instance."""
    app = FastAPI(
        title="Smart Knowledge Extraction API",
        description=(
            "Upload documents and extract structured knowledge from them with an LLM.\n\n"
            "## Features\n"
            "- **Extraction**: Keywords, entities, insights, summary and relationships\n"
            "- **Documents**: List your documents and read their extracted knowledge\n"
            "- **Dashboard**: Upload files and browse insights in the browser\n"
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware: the last added runs first
    # /extract-knowledge answers any origin itself, whatever CORS_ORIGINS says
    app.add_middleware(
        RouteExemptCORSMiddleware,
        exempt_paths=(EXTRACT_PREFIX,),
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(LoginRequiredError, login_required_handler)

    app.include_router(
        extract_router,
        prefix=EXTRACT_PREFIX,
        tags=["Extraction"],
    )
    app.include_router(
        documents_router,
        prefix="/api/v1/documents",
        tags=["Documents"],
    )
    app.include_router(pages_router, include_in_schema=False)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint for container orchestration."""
        return HealthResponse(status="healthy", version=VERSION)

    return app


app = create_app()
