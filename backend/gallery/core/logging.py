"""Structured logging for the gateway.

Events are snake_case names with keyword context, rendered as colored
console lines in debug mode and as JSON lines otherwise. Chatty upstream
client libraries are held at WARNING unless debugging.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from gallery.core.config import Settings

SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# httpx logs every request line at INFO; googleapiclient warns on each build()
UPSTREAM_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "googleapiclient.discovery_cache": logging.ERROR,
}


def _processors(debug: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    return processors


def setup_logging(config: Settings) -> None:
    """Configure structlog and stdlib logging from the given settings.

    Safe to call more than once; the latest settings win.
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=_processors(config.debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)

    for name in SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name, quiet_level in UPSTREAM_LOGGERS.items():
        logging.getLogger(name).setLevel(level if config.debug else max(level, quiet_level))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually with ``__name__``."""
    return structlog.get_logger(name)
