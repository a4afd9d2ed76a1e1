"""Domain records and request bodies.

Wire format is camelCase (``appRoot``, ``activePbi``, ``sessionId``); Python
attributes stay snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


WagMode = Literal["DOCS", "ADR", "DEV"]

WagRole = Literal["user", "pm", "architect", "dev"]

MessageType = Literal[
    "chat",
    "proposal",
    "review",
    "diff",
    "decision",
    "system",
    "context",
]

MessageSource = Literal["transcript", "wag"]

TRANSCRIPT_CONTEXT = "From transcript"
DEFAULT_BRANCH = "dev"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Header(WireModel):
    mode: WagMode | None = None
    app: str = ""
    branch: str = DEFAULT_BRANCH
    context: str = ""


class MessageMetadata(WireModel):
    file: str | None = None
    task: int | None = None
    pbi: str | None = None
    approved: bool | None = None
    source: MessageSource | None = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class Message(WireModel):
    id: str
    timestamp: int
    header: Header
    role: WagRole
    type: MessageType
    content: str
    metadata: MessageMetadata | None = None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"metadata"})
        if self.metadata is not None and not self.metadata.is_empty():
            data["metadata"] = self.metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
        return data


class Application(WireModel):
    name: str
    app_root: str
    repo_root: str | None = None
    last_used: int = 0


class TranscriptOffset(WireModel):
    app: str
    file_path: str
    byte_offset: int
    updated_at: int = 0


class CompletionSession(WireModel):
    id: str
    app: str
    pbi: str
    passed: bool
    failures: list[str] = Field(default_factory=list)
    created_at: int
    updated_at: int


class WorkflowState(WireModel):
    header: Header = Field(default_factory=Header)
    active_pbi: str | None = None
    current_task: int | None = None
    total_tasks: int | None = None
    selected_app: Application | None = None

    def to_wire(self) -> dict[str, Any]:
        # Header keeps mode: null; unset counters and selection are omitted.
        data = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in data.items() if value is not None}


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
class SetStateRequest(WireModel):
    app: str = Field(min_length=1)
    app_root: str | None = None
    repo: str | None = None
    mode: WagMode
    branch: str | None = None
    context: str
    pbi: str | None = None
    task: int | None = None
    total_tasks: int | None = None


class CreateMessageRequest(WireModel):
    role: WagRole
    type: MessageType
    content: str
    file: str | None = None
    task: int | None = None
    pbi: str | None = None
    approved: bool | None = None


class SelectAppRequest(WireModel):
    app: str | None = None


class WorkItemRequest(WireModel):
    pbi: str | None = None
