"""Accepted upload types and text extraction from uploaded bytes."""

import io
import mimetypes
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from src.core.logging import get_logger

logger = get_logger(__name__)

# MIME type -> accepted extensions
ACCEPTED_TYPES: dict[str, tuple[str, ...]] = {
    "text/plain": (".txt",),
    "text/csv": (".csv",),
    "application/pdf": (".pdf",),
}

ACCEPTED_EXTENSIONS: frozenset[str] = frozenset(
    ext for extensions in ACCEPTED_TYPES.values() for ext in extensions
)


class UnsupportedFileTypeError(ValueError):
    """Raised for files outside the accepted text/CSV/PDF types."""


def file_extension(filename: str) -> str:
    """
    Text after the last dot, as used for storage keys and `file_type`.

    A name without a dot yields the whole name.
    """
    return filename.rsplit(".", 1)[-1]


def is_accepted(filename: str, content_type: str | None = None) -> bool:
    """Accept by extension first, then by declared MIME type."""
    suffix = Path(filename).suffix.lower()
    if suffix in ACCEPTED_EXTENSIONS:
        return True
    if content_type:
        return content_type.split(";", 1)[0].strip().lower() in ACCEPTED_TYPES
    return False


def read_text(filename: str, data: bytes, content_type: str | None = None) -> str:
    """
    Return the text content of an uploaded file.

    Text and CSV files are decoded as UTF-8. PDFs are extracted page by
    page; a PDF without a text layer falls back to its raw bytes decoded
    as UTF-8.
    """
    if not is_accepted(filename, content_type):
        raise UnsupportedFileTypeError(f"Unsupported file type: {filename}")

    suffix = Path(filename).suffix.lower()
    guessed_type = content_type or mimetypes.guess_type(filename)[0]

    if suffix == ".pdf" or guessed_type == "application/pdf":
        return _read_pdf(data)

    return data.decode("utf-8", errors="ignore")


def _read_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        texts = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise ValueError(f"Failed to extract text from PDF: {exc}") from exc

    combined = "\n\n".join(filter(None, texts))
    if not combined.strip():
        logger.warning("PDF has no text layer, falling back to raw bytes", pages=len(texts))
        combined = data.decode("utf-8", errors="ignore")
    return combined
