"""Async SQLAlchemy 2.0 engine + session factory."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wagui.db.models import Base


def _is_memory_url(database_url: str) -> bool:
    return database_url.rstrip("/").endswith(("sqlite+aiosqlite:", ":memory:"))


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine.

    - file-backed SQLite: parent directory is created on demand
    - in-memory SQLite: one shared connection (StaticPool) so every
      session sees the same database
    """
    kwargs: dict = {"echo": echo, "connect_args": {"check_same_thread": False}}

    if _is_memory_url(database_url):
        kwargs["poolclass"] = StaticPool
    elif database_url.startswith("sqlite+aiosqlite:///"):
        db_file = Path(database_url[len("sqlite+aiosqlite:///"):])
        db_file.parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(database_url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables and switch file databases to WAL."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if not _is_memory_url(str(engine.url)):
        async with engine.begin() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
