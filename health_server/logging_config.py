"""Logging configuration for the health reminder server."""

import logging
import sys

logger = logging.getLogger("health_server")

_FORMAT = '[%(asctime)s][%(levelname)s] %(message)s'


def configure_logging(level: int = logging.INFO) -> None:
    """Set up logging configuration."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_FORMAT))

    root_logger.addHandler(console_handler)

    # Package loggers propagate to the root handler; only the level is pinned here
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = True

    for logger_name in ['health_server.services.reminders.scheduler', 'health_server.services.notifications.email']:
        logging.getLogger(logger_name).setLevel(level)


def get_logger(name: str = "health_server") -> logging.Logger:
    """Get logger instance."""
    return logging.getLogger(name)
