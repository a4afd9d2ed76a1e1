"""HTTP routers.

The JSON API lives under /api/v1; the event stream and health check are
served from the root.
"""

from fastapi import APIRouter

from wagui.api.apps import router as apps_router
from wagui.api.events import router as events_router
from wagui.api.gate import router as gate_router
from wagui.api.health import router as health_router
from wagui.api.messages import router as messages_router
from wagui.api.state import router as state_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(state_router)     # /api/v1/state
api_router.include_router(messages_router)  # /api/v1/messages
api_router.include_router(apps_router)      # /api/v1/apps, /api/v1/select
api_router.include_router(gate_router)      # /api/v1/cop, /api/v1/gate

__all__ = ["api_router", "events_router", "health_router"]
