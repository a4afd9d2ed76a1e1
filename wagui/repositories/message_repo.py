"""Message repository."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import delete, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from wagui.db.models import MessageRow


@runtime_checkable
class MessageRepository(Protocol):
    async def get_by_id(self, id: str) -> MessageRow | None: ...
    async def upsert(self, row: MessageRow) -> MessageRow: ...
    async def list_oldest_first(self, limit: int = 100) -> list[MessageRow]: ...
    async def list_recent(self, limit: int = 50) -> list[MessageRow]: ...
    async def delete_all(self) -> int: ...


class SQLAlchemyMessageRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, id: str) -> MessageRow | None:
        return await self._session.get(MessageRow, id)

    async def upsert(self, row: MessageRow) -> MessageRow:
        """Insert, or replace every column of the row with the same id.

        An update keeps the SQLite rowid, so tie ordering stays stable.
        """
        merged = await self._session.merge(row)
        await self._session.flush()
        return merged

    async def list_oldest_first(self, limit: int = 100) -> list[MessageRow]:
        result = await self._session.execute(
            select(MessageRow)
            .order_by(MessageRow.timestamp, literal_column("messages.rowid"))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_recent(self, limit: int = 50) -> list[MessageRow]:
        """The newest ``limit`` rows, returned oldest first."""
        result = await self._session.execute(
            select(MessageRow)
            .order_by(MessageRow.timestamp.desc(), literal_column("messages.rowid").desc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        rows.reverse()
        return rows

    async def delete_all(self) -> int:
        result = await self._session.execute(delete(MessageRow))
        return result.rowcount or 0
