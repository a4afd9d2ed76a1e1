"""SSE (Server-Sent Events) formatting utilities."""

import json
from typing import Any


def format_sse_event(event_type: str, payload: Any) -> str:
    """Format a single SSE event string.

    Args:
        event_type: Type of the event (e.g., 'message', 'state', 'clear')
        payload: JSON-serializable data to send

    Returns:
        Formatted SSE event string ready for streaming
    """
    return f"event: {event_type}\ndata: {json.dumps(payload)}\n\n"


def format_sse_comment(text: str) -> str:
    """Comment line; clients ignore it, proxies see traffic."""
    return f": {text}\n\n"
