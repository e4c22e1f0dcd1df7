"""
Document model for uploaded files.

A document row is created by the upload handler right after the raw file
has been written to object storage. Only the extraction service mutates it
afterwards (status and processed_at); nothing deletes it.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, Index, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, UUIDMixin, utc_now
from src.db.enums import DocumentStatus


class Document(UUIDMixin, Base):
    """
    An uploaded document owned by a single user.

    Attributes:
        id: UUID7 primary key
        user_id: Owning user (id issued by the auth service)
        title: Original filename
        file_type: File extension, or "unknown"
        file_path: Object storage key, "<user_id>/<random_id>.<ext>"
        file_size: Size in bytes
        status: pending | processing | completed
        uploaded_at: When the row was created
        processed_at: When extraction finished

    Example:
        document = Document(
            user_id=user.id,
            title="report.txt",
            file_type="txt",
            file_path=f"{user.id}/{uuid4()}.txt",
            file_size=1024,
            status=DocumentStatus.PROCESSING,
        )
    """

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Owning user id from the auth service",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Original filename",
    )

    file_type: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="unknown",
        comment="File extension (txt, csv, pdf)",
    )

    file_path: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Object storage key inside the documents bucket",
    )

    file_size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="File size in bytes",
    )

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(
            DocumentStatus,
            name="document_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=DocumentStatus.PENDING,
        index=True,
        comment="Processing state",
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        comment="Upload time",
    )

    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When knowledge extraction completed",
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, title={self.title[:50]!r}, status={self.status})>"

    def mark_completed(self, when: datetime | None = None) -> None:
        """Flip the document to completed and stamp processed_at."""
        self.status = DocumentStatus.COMPLETED
        self.processed_at = when or utc_now()


# Listing is always "my documents, newest first"
Index("ix_documents_user_id_uploaded_at", Document.user_id, Document.uploaded_at.desc())
