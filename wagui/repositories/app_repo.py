"""Application repository."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wagui.db.models import AppRow


@runtime_checkable
class AppRepository(Protocol):
    async def get_by_name(self, name: str) -> AppRow | None: ...
    async def upsert(self, name: str, app_root: str, repo_root: str | None, last_used: int) -> AppRow: ...
    async def list_by_last_used(self) -> list[AppRow]: ...


class SQLAlchemyAppRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_name(self, name: str) -> AppRow | None:
        return await self._session.get(AppRow, name)

    async def upsert(self, name: str, app_root: str, repo_root: str | None, last_used: int) -> AppRow:
        app = await self.get_by_name(name)
        if app is None:
            app = AppRow(name=name, app_root=app_root, repo_root=repo_root, last_used=last_used)
            self._session.add(app)
        else:
            app.app_root = app_root
            app.repo_root = repo_root
            app.last_used = last_used
        await self._session.flush()
        return app

    async def list_by_last_used(self) -> list[AppRow]:
        result = await self._session.execute(select(AppRow).order_by(AppRow.last_used.desc()))
        return list(result.scalars().all())
