"""Workflow state endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from wagui.api.deps import get_broadcaster, get_follower, get_state_holder, get_store
from wagui.core.eventbus import Broadcaster
from wagui.core.logging import get_logger
from wagui.db.types import new_id, now_ms
from wagui.schemas import DEFAULT_BRANCH, Header, Message, SetStateRequest, WorkflowState
from wagui.services import MessageStore, TranscriptFollower, WorkflowStateHolder

logger = get_logger(__name__)

router = APIRouter(tags=["state"])


def context_summary(state: WorkflowState) -> str:
    """One-line summary posted as a ``context`` message when state changes."""
    parts: list[str] = []
    if state.header.mode:
        parts.append(f"Mode: {state.header.mode}")
    if state.active_pbi:
        parts.append(state.active_pbi)
    if state.current_task and state.total_tasks:
        parts.append(f"Task {state.current_task}/{state.total_tasks}")
    if state.header.context:
        parts.append(state.header.context)
    return " | ".join(parts)


@router.get("/state")
async def get_state(holder: WorkflowStateHolder = Depends(get_state_holder)) -> dict[str, Any]:
    return {"success": True, "state": holder.get().to_wire()}


@router.post("/state")
async def set_state(
    body: SetStateRequest,
    store: MessageStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    holder: WorkflowStateHolder = Depends(get_state_holder),
    follower: TranscriptFollower = Depends(get_follower),
) -> dict[str, Any]:
    selected_app = holder.get().selected_app
    if body.app_root:
        selected_app = await store.upsert_application(body.app, body.app_root, body.repo)
        await follower.start(selected_app.name, selected_app.app_root)

    state = holder.replace(
        WorkflowState(
            header=Header(
                mode=body.mode,
                app=body.app,
                branch=body.branch or DEFAULT_BRANCH,
                context=body.context,
            ),
            active_pbi=body.pbi,
            current_task=body.task,
            total_tasks=body.total_tasks,
            selected_app=selected_app,
        )
    )
    broadcaster.publish("state", state.to_wire())

    message = Message(
        id=new_id(),
        timestamp=now_ms(),
        header=state.header.model_copy(),
        role="dev",
        type="context",
        content=context_summary(state),
    )
    await store.append(message)
    broadcaster.publish("message", message.to_wire())

    logger.info("Workflow state set", data={"app": body.app, "mode": body.mode, "pbi": body.pbi})
    return {"success": True, "state": state.to_wire()}
