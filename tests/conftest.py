"""Shared fixtures: in-memory database, store and a configured app."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from wagui.app import create_app
from wagui.config import Settings
from wagui.db import init_db, make_engine, make_session_factory
from wagui.services import MessageStore

from tests.helpers import python_command


@pytest_asyncio.fixture
async def engine():
    """Async in-memory SQLite engine with the schema created."""
    eng = make_engine("sqlite+aiosqlite://")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as sess:
        async with sess.begin():
            yield sess


@pytest_asyncio.fixture
async def store(session_factory):
    return MessageStore(session_factory)


@pytest.fixture
def transcripts_root(tmp_path: Path) -> Path:
    root = tmp_path / "transcripts"
    root.mkdir()
    return root


@pytest.fixture
def settings(transcripts_root: Path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        transcripts_root=str(transcripts_root),
        transcript_poll_interval_seconds=0.05,
        lint_command=python_command("print('lint ok')"),
        test_command=python_command("print('tests ok')"),
        command_timeout_seconds=30,
        sse_heartbeat_seconds=0.05,
    )


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
