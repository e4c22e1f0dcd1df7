"""API routers for the knowledge extraction service."""

from src.api.documents import router as documents_router
from src.api.extract import router as extract_router
from src.api.pages import router as pages_router

__all__ = [
    "documents_router",
    "extract_router",
    "pages_router",
]
