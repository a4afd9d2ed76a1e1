"""Raw ASGI middleware.

BaseHTTPMiddleware breaks StreamingResponse async generators, so the
/events stream would stall behind it; everything here is plain ASGI.
"""

from __future__ import annotations

import secrets
import time

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse

from wagui.core.logging import get_logger, request_context

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Attach a request id to the logging context and the response."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = None
        for name, value in scope.get("headers", []):
            if name == b"x-request-id":
                request_id = value.decode("latin-1")
                break
        request_id = request_id or secrets.token_hex(8)

        ctx = {
            "request_id": request_id,
            "path": scope.get("path", ""),
            "method": scope.get("method", ""),
        }
        token = request_context.set(ctx)
        start_time = time.perf_counter()
        status_code = 500

        async def send_with_request_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"{ctx['method']} {ctx['path']} -> {status_code}",
                data={"duration_ms": round(duration_ms, 2)},
            )
            request_context.reset(token)


class RequestSizeLimitMiddleware:
    """Reject request bodies larger than max_bytes with 413."""

    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        # Skip body check for methods that don't carry a meaningful body
        if scope.get("method") in {"GET", "HEAD", "OPTIONS"}:
            await self.app(scope, receive, send)
            return
        req = Request(scope, receive)
        body = await req.body()
        if len(body) > self.max_bytes:
            response = JSONResponse({"success": False, "error": "Request body too large"}, status_code=413)
            await response(scope, receive, send)
            return
        body_sent = False

        async def receive_again():
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            # Body already replayed; disconnects still come from the real receive
            return await receive()

        await self.app(scope, receive_again, send)
