"""Liveness endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from wagui.api.deps import get_broadcaster
from wagui.core.eventbus import Broadcaster

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(broadcaster: Broadcaster = Depends(get_broadcaster)) -> dict[str, Any]:
    return {"status": "ok", "clients": broadcaster.subscriber_count}
