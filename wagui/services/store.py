"""MessageStore: durable message log plus apps, transcript offsets and cop sessions.

Each public call runs in its own transaction and completes before returning,
so callers observe their own writes in call order.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wagui.core.exceptions import StorageError
from wagui.core.logging import get_logger
from wagui.db.models import AppRow, CopSessionRow, MessageRow, TranscriptOffsetRow
from wagui.db.types import now_ms
from wagui.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyCopSessionRepository,
    SQLAlchemyMessageRepository,
    SQLAlchemyTranscriptOffsetRepository,
)
from wagui.schemas import Application, CompletionSession, Header, Message, MessageMetadata, TranscriptOffset

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 100


def _message_to_row(message: Message) -> MessageRow:
    metadata = None
    if message.metadata is not None and not message.metadata.is_empty():
        metadata = message.metadata.model_dump(mode="json", exclude_none=True)
    return MessageRow(
        id=message.id,
        timestamp=message.timestamp,
        mode=message.header.mode,
        app=message.header.app,
        branch=message.header.branch,
        context=message.header.context,
        role=message.role,
        type=message.type,
        content=message.content,
        metadata_=metadata,
    )


def _row_to_message(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        timestamp=row.timestamp,
        header=Header(mode=row.mode, app=row.app, branch=row.branch, context=row.context or ""),
        role=row.role,
        type=row.type,
        content=row.content,
        metadata=MessageMetadata.model_validate(row.metadata_) if row.metadata_ else None,
    )


def _row_to_app(row: AppRow) -> Application:
    return Application(
        name=row.name,
        app_root=row.app_root,
        repo_root=row.repo_root,
        last_used=row.last_used,
    )


def _row_to_session(row: CopSessionRow) -> CompletionSession:
    return CompletionSession(
        id=row.id,
        app=row.app,
        pbi=row.pbi,
        passed=bool(row.passed),
        failures=list(row.failures or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class MessageStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sf = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sf() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.error("Storage operation failed", data={"operation": operation, "error": str(exc)})
            raise StorageError(f"{operation} failed: {exc}") from exc

    # -- messages ----------------------------------------------------------

    async def append(self, message: Message) -> Message:
        """Insert, or replace the row with the same id."""
        async with self._transaction("append") as session:
            await SQLAlchemyMessageRepository(session).upsert(_message_to_row(message))
        return message

    async def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[Message]:
        """Up to ``limit`` messages, oldest first."""
        async with self._transaction("list") as session:
            rows = await SQLAlchemyMessageRepository(session).list_oldest_first(limit)
            return [_row_to_message(r) for r in rows]

    async def list_recent(self, limit: int) -> list[Message]:
        """The newest ``limit`` messages, oldest first."""
        async with self._transaction("list_recent") as session:
            rows = await SQLAlchemyMessageRepository(session).list_recent(limit)
            return [_row_to_message(r) for r in rows]

    async def get_by_id(self, id: str) -> Message | None:
        async with self._transaction("get_by_id") as session:
            row = await SQLAlchemyMessageRepository(session).get_by_id(id)
            return _row_to_message(row) if row else None

    async def clear_all(self) -> int:
        async with self._transaction("clear_all") as session:
            removed = await SQLAlchemyMessageRepository(session).delete_all()
        logger.info("Messages cleared", data={"removed": removed})
        return removed

    # -- applications ------------------------------------------------------

    async def upsert_application(self, name: str, app_root: str, repo_root: str | None = None) -> Application:
        async with self._transaction("upsert_application") as session:
            row = await SQLAlchemyAppRepository(session).upsert(name, app_root, repo_root or None, now_ms())
            return _row_to_app(row)

    async def list_applications(self) -> list[Application]:
        async with self._transaction("list_applications") as session:
            rows = await SQLAlchemyAppRepository(session).list_by_last_used()
            return [_row_to_app(r) for r in rows]

    async def get_application(self, name: str) -> Application | None:
        async with self._transaction("get_application") as session:
            row = await SQLAlchemyAppRepository(session).get_by_name(name)
            return _row_to_app(row) if row else None

    # -- transcript offsets ------------------------------------------------

    async def get_transcript_offset(self, app: str) -> TranscriptOffset | None:
        async with self._transaction("get_transcript_offset") as session:
            row = await SQLAlchemyTranscriptOffsetRepository(session).get(app)
            if row is None:
                return None
            return TranscriptOffset(
                app=row.app, file_path=row.file_path, byte_offset=row.byte_offset, updated_at=row.updated_at
            )

    async def set_transcript_offset(self, app: str, file_path: str, byte_offset: int) -> None:
        async with self._transaction("set_transcript_offset") as session:
            await SQLAlchemyTranscriptOffsetRepository(session).set(app, file_path, byte_offset, now_ms())

    # -- completion sessions -----------------------------------------------

    async def save_completion_session(self, completion: CompletionSession) -> None:
        row = CopSessionRow(
            id=completion.id,
            app=completion.app,
            pbi=completion.pbi,
            passed=completion.passed,
            failures=list(completion.failures) or None,
            created_at=completion.created_at,
            updated_at=completion.updated_at,
        )
        async with self._transaction("save_completion_session") as session:
            await SQLAlchemyCopSessionRepository(session).save(row)

    async def get_latest_completion_session(self, app: str, pbi: str) -> CompletionSession | None:
        async with self._transaction("get_latest_completion_session") as session:
            row = await SQLAlchemyCopSessionRepository(session).latest_for(app, pbi)
            return _row_to_session(row) if row else None

    async def clear_completion_session(self, app: str, pbi: str) -> None:
        async with self._transaction("clear_completion_session") as session:
            await SQLAlchemyCopSessionRepository(session).delete_for(app, pbi)
