"""Process entry point: serve the app with uvicorn."""

import uvicorn

from wagui.app import create_app
from wagui.config import Settings, get_settings


def run(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
