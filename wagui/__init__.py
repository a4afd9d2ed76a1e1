"""wagui: workflow relay server with live SSE stream and completion gate."""

__version__ = "0.3.0"
