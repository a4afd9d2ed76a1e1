"""Logging setup: JSON lines for files and collectors, a compact console view.

Call sites attach structured fields with ``logger.info("...", data={...})``.
Request id and path come from ``request_context``, set per request by
RequestContextMiddleware.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Message bodies and command output can be large; keep log lines readable.
MAX_LOGGED_VALUE_CHARS = 500

_NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def _truncate(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _truncate(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_truncate(item) for item in data]
    if isinstance(data, str) and len(data) > MAX_LOGGED_VALUE_CHARS:
        return data[:MAX_LOGGED_VALUE_CHARS] + "..."
    return data


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = request_context.get()
        if ctx:
            entry["request_id"] = ctx.get("request_id")
            entry["path"] = ctx.get("path")

        data = getattr(record, "data", None)
        if data:
            entry["data"] = _truncate(data)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``time LEVEL [request] logger: message key=value ...``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        ctx = request_context.get()
        request_id = (ctx.get("request_id") or "-")[:8] if ctx else "-"

        line = (
            f"{_record_time(record).strftime('%H:%M:%S.%f')[:-3]} {level} "
            f"[{request_id}] {record.name}: {record.getMessage()}"
        )

        data = getattr(record, "data", None)
        if data:
            fields = _truncate(data)
            if isinstance(fields, dict):
                line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
            else:
                line += f" {fields}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Adapter accepting ``data=`` for structured fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if "data" in kwargs:
            kwargs.setdefault("extra", {})["data"] = kwargs.pop("data")
        return msg, kwargs


_loggers: Dict[str, ContextLogger] = {}


def get_logger(name: str) -> ContextLogger:
    if name not in _loggers:
        _loggers[name] = ContextLogger(logging.getLogger(name), {})
    return _loggers[name]


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Replace root handlers with a stdout handler and an optional JSON file."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter() if json_output else ConsoleFormatter(use_color=sys.stdout.isatty()))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)

    for name, noisy_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)
