"""Transcript offset repository."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from wagui.db.models import TranscriptOffsetRow


@runtime_checkable
class TranscriptOffsetRepository(Protocol):
    async def get(self, app: str) -> TranscriptOffsetRow | None: ...
    async def set(self, app: str, file_path: str, byte_offset: int, updated_at: int) -> TranscriptOffsetRow: ...


class SQLAlchemyTranscriptOffsetRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, app: str) -> TranscriptOffsetRow | None:
        return await self._session.get(TranscriptOffsetRow, app)

    async def set(self, app: str, file_path: str, byte_offset: int, updated_at: int) -> TranscriptOffsetRow:
        row = await self.get(app)
        if row is None:
            row = TranscriptOffsetRow(app=app, file_path=file_path, byte_offset=byte_offset, updated_at=updated_at)
            self._session.add(row)
        else:
            row.file_path = file_path
            row.byte_offset = byte_offset
            row.updated_at = updated_at
        await self._session.flush()
        return row
