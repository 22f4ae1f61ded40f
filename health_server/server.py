"""Uvicorn entry point for the health reminder server."""

import uvicorn

from .config import get_settings
from .logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def main():
    """Run the FastAPI server with the reminder sweep attached."""
    configure_logging()
    settings = get_settings()

    sweep = (
        f"every {settings.sweep_interval_seconds}s in {settings.reminder_timezone}"
        if settings.sweep_enabled else "disabled"
    )
    logger.info(f"Serving on {settings.server_host}:{settings.server_port}, reminder sweep {sweep}")

    # The sweep's single-flight guard is per process, so one worker only
    uvicorn.run(
        "health_server.app:app",
        host=settings.server_host,
        port=settings.server_port,
        workers=1,
        log_level="info",
    )


if __name__ == "__main__":
    main()
