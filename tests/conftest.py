"""Pytest configuration and fixtures."""
from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from upload_behaviors.core.config import Settings
from upload_behaviors.core.database import create_session_factory, drop_db, init_db
from tests.models import post_attachment, photo_image


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with a per-test web root and database."""
    return Settings(
        web_root=tmp_path / "web",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        thumbnail_quality=80,
    )


@pytest.fixture
def web_root(test_settings: Settings) -> Path:
    test_settings.ensure_directories_exist()
    return test_settings.web_root


@pytest.fixture(autouse=True)
def behaviors(test_settings: Settings):
    """Point the test models' behaviors at the per-test web root."""
    for behavior in (post_attachment, photo_image):
        behavior.configure(test_settings)
    yield post_attachment, photo_image


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(test_settings: Settings):
    """Create test database engine."""
    engine = create_async_engine(
        test_settings.database_url,
        poolclass=NullPool,  # No connection pooling for tests
        echo=False
    )
    
    await drop_db(engine)
    await init_db(engine)
    
    yield engine
    
    await drop_db(engine)
    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    return create_session_factory(test_db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()
