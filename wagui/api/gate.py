"""Completion gate endpoints: checklist cop and streaming gate."""

from typing import Any

from fastapi import APIRouter, Depends

from wagui.api.deps import get_completion_gate, get_state_holder, get_streaming_gate
from wagui.core.exceptions import BadRequestError
from wagui.schemas import Application, WorkItemRequest
from wagui.services import CompletionGate, StreamingGate, WorkflowStateHolder

router = APIRouter(tags=["gate"])


def _resolve_target(body: WorkItemRequest, holder: WorkflowStateHolder) -> tuple[Application, str]:
    if not body.pbi:
        raise BadRequestError("pbi is required")
    state = holder.get()
    if state.selected_app is None:
        raise BadRequestError("No app selected")
    return state.selected_app, body.pbi


@router.post("/cop")
async def run_cop(
    body: WorkItemRequest,
    holder: WorkflowStateHolder = Depends(get_state_holder),
    gate: CompletionGate = Depends(get_completion_gate),
) -> dict[str, Any]:
    app, pbi = _resolve_target(body, holder)
    result = await gate.run_cop(app.name, app.app_root, pbi)
    return {"success": True, **result.to_wire()}


@router.post("/gate")
async def run_gate(
    body: WorkItemRequest,
    holder: WorkflowStateHolder = Depends(get_state_holder),
    gate: StreamingGate = Depends(get_streaming_gate),
) -> dict[str, Any]:
    app, pbi = _resolve_target(body, holder)
    result = await gate.run_gate(app.app_root, pbi)
    return {"success": True, **result.to_wire()}
