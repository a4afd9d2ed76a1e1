"""Builders shared by the test modules."""

from __future__ import annotations

import shlex
import sys

from wagui.db.types import new_id
from wagui.schemas import Header, Message, MessageMetadata


def python_command(code: str) -> str:
    """Shell-style command running ``code`` with the current interpreter."""
    return shlex.join([sys.executable, "-c", code])


def make_message(
    timestamp: int,
    content: str = "hello",
    id: str | None = None,
    role: str = "dev",
    type: str = "chat",
    metadata: MessageMetadata | None = None,
) -> Message:
    return Message(
        id=id or new_id(),
        timestamp=timestamp,
        header=Header(mode="DEV", app="shop", branch="dev", context="testing"),
        role=role,
        type=type,
        content=content,
        metadata=metadata,
    )
