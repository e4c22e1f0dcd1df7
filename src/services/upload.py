"""
Upload pipeline: store the file, record the document, extract knowledge.

Steps run strictly in order, each awaited before the next, and report
progress as they complete:

    10  started
    30  user confirmed
    50  bytes stored in object storage
    70  document row inserted (status "processing")
    80  text read from the file
    100 knowledge extracted and stored

A failure aborts the pipeline with no compensation: an object already
stored or a document row already inserted stays in place.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import bind_context, get_logger
from src.db.enums import DocumentStatus
from src.db.models import Document, ExtractedKnowledge
from src.services.auth import AuthUser
from src.services.extraction import KnowledgeExtractionService
from src.services.file_text import UnsupportedFileTypeError, file_extension, is_accepted, read_text
from src.services.storage import StorageClient, build_object_path

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]

T = TypeVar("T")


class NotAuthenticatedError(Exception):
    """Raised when an upload is attempted without a signed-in user."""

    def __init__(self) -> None:
        super().__init__("Not authenticated")


@dataclass
class UploadedFile:
    """An uploaded file held in memory."""

    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadResult:
    document: Document
    knowledge: ExtractedKnowledge


def first_file(files: Sequence[T]) -> T | None:
    """Keep only the first file of a multi-file drop."""
    if not files:
        return None
    if len(files) > 1:
        logger.info("Ignoring extra files", received=len(files))
    return files[0]


class UploadService:
    """
    Runs the upload pipeline for one file.

    Usage:
        service = UploadService(db, storage, extractor)
        result = await service.upload(user, uploaded_file, on_progress=print)
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageClient,
        extractor: KnowledgeExtractionService,
    ):
        self.db = db
        self.storage = storage
        self.extractor = extractor

    async def upload(
        self,
        user: AuthUser | None,
        file: UploadedFile,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        def progress(value: int) -> None:
            logger.debug("Upload progress", progress=value)
            if on_progress:
                on_progress(value)

        progress(10)

        if user is None:
            raise NotAuthenticatedError()
        if not is_accepted(file.filename, file.content_type):
            raise UnsupportedFileTypeError(f"Unsupported file type: {file.filename}")

        bind_context(user_id=str(user.id))
        progress(30)

        extension = file_extension(file.filename)
        file_path = build_object_path(user.id, extension)
        await self.storage.upload(file_path, file.data, content_type=file.content_type)
        progress(50)

        document = await self._create_document(user.id, file, extension, file_path)
        progress(70)

        text = read_text(file.filename, file.data, file.content_type)
        progress(80)

        knowledge = await self.extractor.extract_and_store(
            document_id=document.id,
            user_id=user.id,
            content=text,
            file_type=extension,
        )
        progress(100)

        logger.info("Upload processed", document_id=str(document.id), title=file.filename)
        return UploadResult(document=document, knowledge=knowledge)

    async def _create_document(
        self,
        user_id: UUID,
        file: UploadedFile,
        extension: str,
        file_path: str,
    ) -> Document:
        document = Document(
            user_id=user_id,
            title=file.filename,
            file_type=extension or "unknown",
            file_path=file_path,
            file_size=file.size,
            status=DocumentStatus.PROCESSING,
        )
        self.db.add(document)
        await self.db.commit()
        logger.info("Document created", document_id=str(document.id), file_path=file_path)
        return document
