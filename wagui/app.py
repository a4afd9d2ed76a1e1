"""
wagui server application.

FastAPI app relaying workflow messages between the assistant host and the
live UI, with transcript tailing and the completion gate.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wagui import __version__
from wagui.api import api_router, events_router, health_router
from wagui.config import Settings, get_settings
from wagui.core import (
    Broadcaster,
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from wagui.db import init_db, make_engine, make_session_factory
from wagui.services import (
    CompletionGate,
    MessageStore,
    StreamingGate,
    TranscriptFollower,
    WorkflowStateHolder,
    default_plan,
)

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the components on startup, tear them down on shutdown."""
        setup_logging(
            level=settings.log_level,
            json_output=settings.log_json,
            log_file=settings.log_file or None,
        )
        logger.info(
            "Starting wagui server",
            data={
                "host": settings.host,
                "port": settings.port,
                "database_url": settings.database_url,
                "transcripts_root": settings.transcripts_root,
            },
        )

        engine = make_engine(settings.database_url)
        await init_db(engine)
        store = MessageStore(make_session_factory(engine))
        broadcaster = Broadcaster(queue_size=settings.subscriber_queue_size)
        follower = TranscriptFollower(
            store,
            broadcaster,
            transcripts_root=settings.transcripts_root,
            interval_seconds=settings.transcript_poll_interval_seconds,
        )

        _app.state.settings = settings
        _app.state.engine = engine
        _app.state.store = store
        _app.state.broadcaster = broadcaster
        _app.state.state_holder = WorkflowStateHolder()
        _app.state.follower = follower
        _app.state.completion_gate = CompletionGate(
            store,
            default_plan(settings.lint_command, settings.test_command, settings.command_timeout_seconds),
        )
        _app.state.streaming_gate = StreamingGate(
            broadcaster.publish,
            lint_command=settings.lint_command,
            test_command=settings.test_command,
            timeout=settings.command_timeout_seconds,
        )

        yield

        # Shutdown
        logger.info("Shutting down wagui server")
        await follower.stop()
        await engine.dispose()

    app = FastAPI(
        title="wagui",
        description="Workflow relay server: message log, SSE stream, transcript tailing, completion gate",
        version=__version__,
        lifespan=lifespan,
    )

    # Exception handlers before middleware
    setup_exception_handlers(app)

    # Last added runs first
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(api_router)
    app.include_router(events_router)
    app.include_router(health_router)

    return app
