"""Application registry endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from wagui.api.deps import get_broadcaster, get_follower, get_state_holder, get_store
from wagui.core.eventbus import Broadcaster
from wagui.core.exceptions import BadRequestError, NotFoundError
from wagui.schemas import SelectAppRequest
from wagui.services import MessageStore, TranscriptFollower, WorkflowStateHolder

router = APIRouter(tags=["apps"])


@router.get("/apps")
async def list_apps(store: MessageStore = Depends(get_store)) -> dict[str, Any]:
    apps = await store.list_applications()
    return {"success": True, "apps": [a.to_wire() for a in apps]}


@router.post("/select")
async def select_app(
    body: SelectAppRequest,
    store: MessageStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    holder: WorkflowStateHolder = Depends(get_state_holder),
    follower: TranscriptFollower = Depends(get_follower),
) -> dict[str, Any]:
    if not body.app:
        raise BadRequestError("app is required")

    app = await store.get_application(body.app)
    if app is None:
        raise NotFoundError(f'App "{body.app}" not found')

    state = holder.get()
    state.selected_app = app
    state.header.app = app.name
    state = holder.replace(state)
    await follower.start(app.name, app.app_root)

    broadcaster.publish("state", state.to_wire())
    broadcaster.publish("app-changed", {"app": app.to_wire()})
    return {"success": True, "app": app.to_wire()}
