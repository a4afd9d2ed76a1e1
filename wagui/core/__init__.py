"""Core module with logging, middleware, events and exception handling."""

from wagui.core.eventbus import Broadcaster, BusEvent, Subscription
from wagui.core.exceptions import (
    BadRequestError,
    ClearRefusedError,
    NotFoundError,
    StorageError,
    WaguiError,
    setup_exception_handlers,
)
from wagui.core.logging import get_logger, setup_logging
from wagui.core.middleware import RequestContextMiddleware, RequestSizeLimitMiddleware

__all__ = [
    "Broadcaster",
    "BusEvent",
    "Subscription",
    "BadRequestError",
    "ClearRefusedError",
    "NotFoundError",
    "StorageError",
    "WaguiError",
    "setup_exception_handlers",
    "get_logger",
    "setup_logging",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
]
