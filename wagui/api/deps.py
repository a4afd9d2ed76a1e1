"""Request-scoped accessors for the components built in the lifespan."""

from fastapi import Request

from wagui.config import Settings
from wagui.core.eventbus import Broadcaster
from wagui.services import CompletionGate, MessageStore, StreamingGate, TranscriptFollower, WorkflowStateHolder


def get_store(request: Request) -> MessageStore:
    return request.app.state.store


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_state_holder(request: Request) -> WorkflowStateHolder:
    return request.app.state.state_holder


def get_follower(request: Request) -> TranscriptFollower:
    return request.app.state.follower


def get_completion_gate(request: Request) -> CompletionGate:
    return request.app.state.completion_gate


def get_streaming_gate(request: Request) -> StreamingGate:
    return request.app.state.streaming_gate


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
