"""
Database connection and session management.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


if engine.dialect.name == "sqlite":

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE CASCADE unless enabled per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def sqlite_data_source(url: Optional[str] = None) -> Optional[str]:
    """Return the database file path for a SQLite URL, or None for other engines."""
    parsed = make_url(url or settings.database_url)
    if not parsed.get_backend_name().startswith("sqlite"):
        return None
    if not parsed.database or parsed.database == ":memory:":
        return None
    return parsed.database


def ensure_data_directory() -> Optional[str]:
    """Create the directory holding the SQLite file, if any. Returns the file path."""
    data_source = sqlite_data_source()
    if data_source:
        directory = os.path.dirname(os.path.abspath(data_source))
        os.makedirs(directory, exist_ok=True)
    return data_source


async def init_db():
    """Create all tables (development only; use migrations in production)."""
    import app.models  # noqa: F401  populate metadata

    ensure_data_directory()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def check_connection() -> bool:
    """Return True when the store answers a trivial query."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
