"""Database session management and connection handling."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings

# Base class for ORM models that carry upload attributes
Base = declarative_base()


def create_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """
    Create an async engine.
    
    Args:
        url: Connection URL (defaults to ``settings.database_url``)
        **kwargs: Extra engine options
        
    Returns:
        Async engine
    """
    kwargs.setdefault("echo", settings.database_echo)
    return create_async_engine(url or settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_db_context(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    
    Usage:
        async with get_db_context(factory) as db:
            # use db session
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(engine: AsyncEngine, metadata=None):
    """Create tables (for development/testing)."""
    async with engine.begin() as conn:
        await conn.run_sync((metadata or Base.metadata).create_all)


async def drop_db(engine: AsyncEngine, metadata=None):
    """Drop tables (for testing)."""
    async with engine.begin() as conn:
        await conn.run_sync((metadata or Base.metadata).drop_all)
