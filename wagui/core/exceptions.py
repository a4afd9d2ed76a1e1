"""Error taxonomy and FastAPI exception handlers.

Every handler renders the same envelope the UI and CLI expect:
``{"success": false, "error": "<message>"}``.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from wagui.core.logging import get_logger, request_context

logger = get_logger(__name__)


class WaguiError(Exception):
    """Base exception for wagui."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BadRequestError(WaguiError):
    """Missing or malformed request field."""

    def __init__(self, message: str):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class NotFoundError(WaguiError):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ClearRefusedError(WaguiError):
    """Clear blocked by the completion gate."""

    def __init__(self, reason: str):
        super().__init__(reason, status_code=status.HTTP_403_FORBIDDEN)


class StorageError(WaguiError):
    """Underlying persistence failure."""

    def __init__(self, message: str = "Storage error"):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _error_response(status_code: int, message: str) -> JSONResponse:
    content = {"success": False, "error": message}
    ctx = request_context.get()
    headers = {"X-Request-ID": ctx["request_id"]} if ctx and ctx.get("request_id") else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _summarize_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid request"


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(WaguiError)
    async def wagui_exception_handler(request: Request, exc: WaguiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"wagui error: {exc.message}", data={"status_code": exc.status_code})
        else:
            logger.info(f"Request rejected: {exc.message}", data={"status_code": exc.status_code})
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _summarize_validation_errors(exc)
        logger.warning("Validation error", data={"errors": message})
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Internal server error")
