"""Message log endpoints, including the gated clear."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from wagui.api.deps import get_broadcaster, get_completion_gate, get_state_holder, get_store
from wagui.core.eventbus import Broadcaster
from wagui.core.exceptions import ClearRefusedError
from wagui.core.logging import get_logger
from wagui.db.types import new_id, now_ms
from wagui.schemas import CreateMessageRequest, Message, MessageMetadata
from wagui.services import CompletionGate, MessageStore, WorkflowStateHolder
from wagui.services.store import DEFAULT_LIST_LIMIT

logger = get_logger(__name__)

router = APIRouter(tags=["messages"])


@router.get("/messages")
async def list_messages(
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1),
    store: MessageStore = Depends(get_store),
) -> dict[str, Any]:
    messages = await store.list(limit)
    return {"success": True, "count": len(messages), "messages": [m.to_wire() for m in messages]}


@router.post("/messages")
async def create_message(
    body: CreateMessageRequest,
    store: MessageStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    holder: WorkflowStateHolder = Depends(get_state_holder),
) -> dict[str, Any]:
    metadata = MessageMetadata(
        file=body.file or None,
        task=body.task or None,
        pbi=body.pbi or None,
        approved=body.approved,
    )
    message = Message(
        id=new_id(),
        timestamp=now_ms(),
        header=holder.get().header,
        role=body.role,
        type=body.type,
        content=body.content,
        metadata=None if metadata.is_empty() else metadata,
    )
    await store.append(message)
    broadcaster.publish("message", message.to_wire())
    return {"success": True, "message": message.to_wire()}


@router.delete("/messages")
async def clear_messages(
    store: MessageStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    holder: WorkflowStateHolder = Depends(get_state_holder),
    gate: CompletionGate = Depends(get_completion_gate),
) -> dict[str, Any]:
    current = holder.get()
    app = current.selected_app.name if current.selected_app else current.header.app
    pbi = current.active_pbi

    decision = await gate.can_clear(app, pbi)
    if not decision.allowed:
        logger.info("Clear refused", data={"app": app, "pbi": pbi})
        raise ClearRefusedError(decision.reason or "Clear refused")

    await store.clear_all()
    if pbi:
        await store.clear_completion_session(app, pbi)
    state = holder.reset()

    broadcaster.publish("clear", {})
    broadcaster.publish("state", state.to_wire())
    return {"success": True, "message": "Messages cleared"}
