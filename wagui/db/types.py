"""Identifier and clock helpers shared by the ORM layer."""

from __future__ import annotations

import time
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """Milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
