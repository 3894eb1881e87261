"""structlog setup shared by the web app and the CLI."""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE = Path("logs/aeccheck.log")


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Route stdlib and structlog output through one renderer.

    Args:
        level: Log level name; defaults to LOG_LEVEL or INFO
        json_logs: JSON lines instead of console output; defaults to
            JSON_LOGS=true or LOG_FORMAT=json
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if json_logs is None:
        json_logs = (
            os.getenv("JSON_LOGS", "false").lower() == "true"
            or os.getenv("LOG_FORMAT", "").lower() == "json"
        )

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level.upper())

    # One line per GraphQL page is too chatty below WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
