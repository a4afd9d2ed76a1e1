"""Completion-gate (cop) session repository."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import delete, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from wagui.db.models import CopSessionRow


@runtime_checkable
class CopSessionRepository(Protocol):
    async def get_by_id(self, id: str) -> CopSessionRow | None: ...
    async def save(self, row: CopSessionRow) -> CopSessionRow: ...
    async def latest_for(self, app: str, pbi: str) -> CopSessionRow | None: ...
    async def delete_for(self, app: str, pbi: str) -> int: ...


class SQLAlchemyCopSessionRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, id: str) -> CopSessionRow | None:
        return await self._session.get(CopSessionRow, id)

    async def save(self, row: CopSessionRow) -> CopSessionRow:
        """Insert, or update only the verdict fields of an existing id."""
        existing = await self.get_by_id(row.id)
        if existing is None:
            self._session.add(row)
            await self._session.flush()
            return row
        existing.passed = row.passed
        existing.failures = row.failures
        existing.updated_at = row.updated_at
        await self._session.flush()
        return existing

    async def latest_for(self, app: str, pbi: str) -> CopSessionRow | None:
        """Most recently updated session; ties go to the later insert."""
        result = await self._session.execute(
            select(CopSessionRow)
            .where(CopSessionRow.app == app, CopSessionRow.pbi == pbi)
            .order_by(CopSessionRow.updated_at.desc(), literal_column("cop_sessions.rowid").desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_for(self, app: str, pbi: str) -> int:
        result = await self._session.execute(
            delete(CopSessionRow).where(CopSessionRow.app == app, CopSessionRow.pbi == pbi)
        )
        return result.rowcount or 0
