"""
Database session management for FastAPI and standalone usage.

Usage in FastAPI:
    @router.get("/documents")
    async def list_documents(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(Document))
        return result.scalars().all()

Usage in scripts:
    async with get_db_context() as db:
        result = await db.execute(select(Document))
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base import AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a request-scoped database session.

    The session is NOT auto-committed; services call `await db.commit()`
    explicitly after each step they want persisted.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of FastAPI (CLI scripts).

    The session is closed when exiting the context, even if an exception occurs.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
