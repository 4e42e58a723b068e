"""
Async SQLAlchemy engine and sessions.

Sessions keep objects loaded after commit (expire_on_commit=False): the
sync pass reads rows it wrote in the ledger transaction that precedes it.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.config import settings

logger = logging.getLogger(__name__)

# NullPool: connections are pooled by PgBouncer in front of PostgreSQL
engine = create_async_engine(
    settings.database_url,
    poolclass=NullPool,
    echo=settings.sql_echo,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope for scheduler jobs, startup and scripts.

    Commits on success, rolls back and re-raises on any error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping get_db_context."""
    async with get_db_context() as session:
        yield session
