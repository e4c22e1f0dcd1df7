"""
SQLAlchemy Base Configuration and Mixins.

This module provides:
- Async engine and session factory configuration
- Base declarative class for all models
- Reusable mixins (UUID7 primary key, timestamps)
- A JSON column type that maps to JSONB on PostgreSQL

All models in this project should inherit from `Base` and use the provided
mixins for consistency.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, MetaData, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from uuid6 import uuid7

from src.core.config import settings

# =============================================================================
# DATABASE ENGINE CONFIGURATION
# =============================================================================

# Naming convention for database constraints, kept stable for Alembic
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

# JSONB on PostgreSQL, plain JSON on other dialects (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

engine = create_async_engine(
    settings.db_url,
    echo=settings.is_development and settings.log_level == "DEBUG",
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

# expire_on_commit=False keeps rows readable after commit in async handlers
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


def utc_now() -> datetime:
    """Timezone-aware current time, used as a client-side column default."""
    return datetime.now(timezone.utc)


# =============================================================================
# BASE CLASS
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Features:
    - AsyncAttrs: Enables `await` on lazy-loaded attributes
    - Custom metadata with naming conventions
    - Automatic __tablename__ generation from class name (Document -> documents)
    """

    metadata = metadata

    __name__: str

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Convert CamelCase class name to a pluralised snake_case table name."""
        name = cls.__name__
        snake_case = "".join(
            f"_{char.lower()}" if char.isupper() and i > 0 else char.lower()
            for i, char in enumerate(name)
        )
        if snake_case.endswith("y"):
            return snake_case[:-1] + "ies"
        elif snake_case.endswith("s"):
            return snake_case + "es"
        else:
            return snake_case + "s"


# =============================================================================
# MIXINS
# =============================================================================

class UUIDMixin:
    """
    Mixin that provides a UUID7 primary key.

    UUID7 values are time-ordered, so primary-key order roughly follows
    insertion order.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid7,
        sort_order=-100,
    )


class CreatedAtMixin:
    """
    Mixin that provides only created_at timestamp.

    Use this for immutable records (extracted knowledge is written once).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        sort_order=100,
    )


# =============================================================================
# DATABASE LIFECYCLE UTILITIES
# =============================================================================

async def init_db() -> None:
    """
    Create all tables.

    Note: In production, use Alembic migrations instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the engine and close all pooled connections on shutdown."""
    await engine.dispose()
