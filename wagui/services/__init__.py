"""Domain services: storage, workflow state, transcript follower and gates."""

from wagui.services.cop import (
    CheckPlan,
    CheckResult,
    ClearDecision,
    CompletionGate,
    CopResult,
    ProjectCheck,
    WorkItemCheck,
    default_plan,
)
from wagui.services.gate import GateResult, StreamingGate
from wagui.services.state import WorkflowStateHolder
from wagui.services.store import MessageStore
from wagui.services.transcript import TranscriptFollower

__all__ = [
    "CheckPlan",
    "CheckResult",
    "ClearDecision",
    "CompletionGate",
    "CopResult",
    "ProjectCheck",
    "WorkItemCheck",
    "default_plan",
    "GateResult",
    "StreamingGate",
    "WorkflowStateHolder",
    "MessageStore",
    "TranscriptFollower",
]
