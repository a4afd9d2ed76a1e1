"""Server-sent event stream for the live UI."""

from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from wagui.api.deps import get_app_settings, get_broadcaster, get_state_holder, get_store
from wagui.config import Settings
from wagui.core.eventbus import Broadcaster
from wagui.core.logging import get_logger
from wagui.core.sse import format_sse_comment, format_sse_event
from wagui.db.types import now_ms
from wagui.services import MessageStore, WorkflowStateHolder

logger = get_logger(__name__)

router = APIRouter(tags=["events"])


@router.get("/events")
async def stream_events(
    request: Request,
    store: MessageStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    holder: WorkflowStateHolder = Depends(get_state_holder),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    async def event_stream() -> AsyncGenerator[str, None]:
        # Subscribe before the backlog read; an unstarted stream holds no subscription.
        subscription = broadcaster.subscribe()
        logger.info("SSE client connected", data={"subscriber": subscription.id})
        try:
            yield format_sse_event("connected", {"timestamp": now_ms()})
            yield format_sse_event("state", holder.get().to_wire())

            backlog = await store.list_recent(settings.sse_backlog_limit)
            sent_ids = {m.id for m in backlog}
            for message in backlog:
                yield format_sse_event("message", message.to_wire())

            while True:
                event = await subscription.get(timeout=settings.sse_heartbeat_seconds)
                if event is None:
                    if await request.is_disconnected():
                        break
                    yield format_sse_comment("ping")
                    continue
                if event.event == "message" and sent_ids:
                    # Already delivered as part of the backlog.
                    if event.data.get("id") in sent_ids:
                        sent_ids.discard(event.data.get("id"))
                        continue
                elif event.event == "clear":
                    sent_ids.clear()
                yield format_sse_event(event.event, event.data)
        finally:
            broadcaster.unsubscribe(subscription)
            logger.info("SSE client disconnected", data={"subscriber": subscription.id})

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
