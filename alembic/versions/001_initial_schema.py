"""Initial schema - documents and extracted knowledge.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

This migration creates:
- documents: uploaded files, one row per upload
- extracted_knowledge: structured LLM output for a document
- the document_status ENUM type
- indexes for the per-user, newest-first listing and knowledge lookup
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create tables, enum, and indexes."""

    document_status_enum = postgresql.ENUM(
        "pending",
        "processing",
        "completed",
        name="document_status",
        create_type=False,
    )
    document_status_enum.create(op.get_bind(), checkfirst=True)

    # --------------------------------------------------------------------------
    # documents table
    # --------------------------------------------------------------------------
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column(
            "user_id",
            sa.UUID(),
            nullable=False,
            comment="Owning user id from the auth service",
        ),
        sa.Column("title", sa.Text(), nullable=False, comment="Original filename"),
        sa.Column(
            "file_type",
            sa.Text(),
            nullable=False,
            comment="File extension (txt, csv, pdf)",
        ),
        sa.Column(
            "file_path",
            sa.Text(),
            nullable=False,
            comment="Object storage key inside the documents bucket",
        ),
        sa.Column(
            "file_size", sa.BigInteger(), nullable=False, comment="File size in bytes"
        ),
        sa.Column(
            "status",
            document_status_enum,
            nullable=False,
            server_default="pending",
            comment="Processing state",
        ),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Upload time",
        ),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When knowledge extraction completed",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
    )
    op.create_index("ix_documents_user_id", "documents", ["user_id"], unique=False)
    op.create_index("ix_documents_status", "documents", ["status"], unique=False)
    op.create_index(
        "ix_documents_user_id_uploaded_at",
        "documents",
        ["user_id", sa.text("uploaded_at DESC")],
        unique=False,
    )

    # --------------------------------------------------------------------------
    # extracted_knowledge table
    # --------------------------------------------------------------------------
    op.create_table(
        "extracted_knowledge",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column(
            "user_id",
            sa.UUID(),
            nullable=False,
            comment="Owning user id from the auth service",
        ),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column(
            "keywords",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "entities",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "key_insights",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "relationships",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_extracted_knowledge_document_id_documents",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_extracted_knowledge"),
    )
    op.create_index(
        "ix_extracted_knowledge_user_id", "extracted_knowledge", ["user_id"], unique=False
    )
    op.create_index(
        "ix_extracted_knowledge_document_id",
        "extracted_knowledge",
        ["document_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop tables and enum in reverse order."""
    op.drop_table("extracted_knowledge")
    op.drop_table("documents")
    op.execute("DROP TYPE IF EXISTS document_status")
