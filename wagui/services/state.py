"""Holder for the single "what is happening right now" workflow state."""

from __future__ import annotations

from wagui.schemas import WorkflowState


class WorkflowStateHolder:
    """get/replace/reset over one WorkflowState.

    get() hands out a copy so callers cannot mutate the held state in place.
    """

    def __init__(self, initial: WorkflowState | None = None):
        self._state = initial or WorkflowState()

    def get(self) -> WorkflowState:
        return self._state.model_copy(deep=True)

    def replace(self, state: WorkflowState) -> WorkflowState:
        self._state = state.model_copy(deep=True)
        return self.get()

    def reset(self) -> WorkflowState:
        self._state = WorkflowState()
        return self.get()
